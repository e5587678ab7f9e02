"""
Environment setup and the install command
"""
import logging

import typer

from ..config import Config, ConfigError
from ..system import (
    SystemSetupError,
    check_privileges,
    probe_environment,
    install_dependencies,
)
from .output import console

logger = logging.getLogger(__name__)


def bootstrap(install: bool = True) -> Config:
    """
    Load configuration and prepare the host: root check, OS detection and
    (optionally) dependency installation

    Raises:
        typer.Exit: With code 1 on any unrecoverable setup failure
    """
    try:
        check_privileges()
        config = probe_environment(Config.load())
        if install:
            with console.status("[bold blue]Checking dependencies..."):
                installed = install_dependencies(config)
            if installed:
                console.print(f"[bold green]✓ Installed: {' '.join(installed)}")
        return config
    except ConfigError as e:
        console.print(f"[bold red]Configuration error: {str(e)}")
        raise typer.Exit(code=1)
    except SystemSetupError as e:
        console.print(f"[bold red]Error: {str(e)}")
        raise typer.Exit(code=1)


def install_command():
    """Install nginx, certbot and the certbot nginx plugin"""
    config = bootstrap(install=True)
    logger.debug(f"Environment: {config.os_family} ({config.package_manager})")
    console.print("[bold green]✓ All dependencies are installed")
