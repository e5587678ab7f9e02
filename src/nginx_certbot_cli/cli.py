"""
Command-line interface for nginx-certbot-cli
"""
import logging
from typing import Optional

import typer

from .lib.cmd import (
    # Command implementations
    bootstrap,
    create_command,
    init_command,
    install_command,
    list_command,
    toggle_command,
    modify_command,
    hsts_command,
    renew_command,
    delete_command,
    menu_command
)
from .lib.factory import create_manager

logger = logging.getLogger(__name__)

app = typer.Typer(help="nginx-certbot-cli - nginx reverse proxies with Let's Encrypt certificates")


def _manager(install: bool = False):
    config = bootstrap(install=install)
    return config, create_manager(config)


def _finish(ok: bool):
    if not ok:
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def root(
    ctx: typer.Context,
    debug: bool = typer.Option(False, '--debug', '-d', help='Enable debug logging')
):
    """Run the interactive menu when no command is given"""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")
    if ctx.invoked_subcommand is None:
        config, manager = _manager(install=True)
        menu_command(config, manager)


@app.command()
def menu():
    """Interactive menu: create, manage, exit"""
    config, manager = _manager(install=True)
    menu_command(config, manager)


@app.command()
def create():
    """Create a reverse proxy and request its certificate"""
    config, manager = _manager(install=True)
    _finish(create_command(config, manager))


@app.command()
def list():
    """List managed reverse proxies"""
    _, manager = _manager()
    list_command(manager)


@app.command()
def enable(domain: str = typer.Argument(..., help='Primary domain of the proxy')):
    """Resume a paused proxy"""
    _, manager = _manager()
    _finish(toggle_command(manager, domain.lower(), enabled=True))


@app.command()
def disable(domain: str = typer.Argument(..., help='Primary domain of the proxy')):
    """Pause a proxy without deleting it"""
    _, manager = _manager()
    _finish(toggle_command(manager, domain.lower(), enabled=False))


@app.command()
def modify(
    domain: str = typer.Argument(..., help='Primary domain of the proxy'),
    target: Optional[str] = typer.Option(None, '--target', '-t', help='New target address, e.g. 9000 or 10.0.0.5:9000 (prompted if not provided)'),
    https: bool = typer.Option(False, '--https', help='Proxy to the target over HTTPS')
):
    """Change the proxy target of a domain"""
    config, manager = _manager()
    _finish(modify_command(manager, config, domain.lower(), target=target, protocol="https" if https else "http"))


@app.command()
def hsts(domain: str = typer.Argument(..., help='Primary domain of the proxy')):
    """Enable HTTP Strict Transport Security"""
    _, manager = _manager()
    _finish(hsts_command(manager, domain.lower()))


@app.command()
def renew(
    domain: str = typer.Argument(..., help='Primary domain of the proxy'),
    dry_run: bool = typer.Option(False, '--dry-run', help='Simulate the renewal before running it'),
    yes: bool = typer.Option(False, '--yes', '-y', help='Renew without confirmation')
):
    """Renew the certificate of a domain"""
    _, manager = _manager(install=True)
    _finish(renew_command(manager, domain.lower(), dry_run=dry_run, assume_yes=yes))


@app.command()
def delete(
    domain: str = typer.Argument(..., help='Primary domain of the proxy'),
    force: bool = typer.Option(False, '--force', '-f', help='Delete without the first confirmation')
):
    """Delete the certificate and the nginx configuration of a domain"""
    _, manager = _manager()
    _finish(delete_command(manager, domain.lower(), force=force))


@app.command()
def install():
    """Install nginx, certbot and the certbot nginx plugin"""
    return install_command()


@app.command()
def init():
    """Write the nginx-certbot-cli configuration file"""
    return init_command()


def main():
    """Main entry point"""
    # Set up basic logging
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Run the app
    app()


if __name__ == "__main__":
    main()
