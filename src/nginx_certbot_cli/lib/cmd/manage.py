"""
Management commands implementation for nginx-certbot-cli (list, toggle,
modify, HSTS, renew, delete) and the interactive management menus
"""
import logging
from typing import Optional

from rich.console import Console
from rich.prompt import Prompt, Confirm
from rich.table import Table

from ..cert.base import CertificateError
from ..config import Config
from ..manager import ProxyManager
from ..proxy.base import ProxyError
from .input import InputCollector
from .output import console, report_error
from .port import build_target

logger = logging.getLogger(__name__)


def _status_text(enabled: bool) -> str:
    return "[green]active" if enabled else "[yellow]paused"


def list_command(manager: ProxyManager, out: Optional[Console] = None) -> int:
    """
    List every managed proxy

    Returns:
        Number of proxies found
    """
    out = out or console
    proxies = manager.discover()
    if not proxies:
        out.print("[yellow]No configurations created by this tool were found")
        return 0

    table = Table(title="Managed reverse proxies")
    table.add_column("Domain", style="cyan")
    table.add_column("Aliases", style="magenta")
    table.add_column("Target", style="green")
    table.add_column("Status")
    table.add_column("TLS", style="blue")
    table.add_column("HSTS", style="yellow")

    for proxy_config in proxies:
        table.add_row(
            proxy_config.primary_domain,
            " ".join(proxy_config.domains[1:]),
            proxy_config.target,
            _status_text(proxy_config.enabled),
            "Yes" if proxy_config.certificate else "No",
            "Yes" if proxy_config.hsts else "No"
        )
    out.print(table)
    return len(proxies)


def toggle_command(manager: ProxyManager, domain: str, enabled: Optional[bool] = None,
                   out: Optional[Console] = None) -> bool:
    """
    Pause or resume a domain; with enabled=None the state is flipped

    Returns:
        True on success (including when already in the requested state)
    """
    out = out or console
    try:
        if enabled is None:
            now_enabled = manager.toggle(domain)
        else:
            if not manager.set_enabled(domain, enabled):
                out.print(f"[yellow]{domain} is already {'active' if enabled else 'paused'}")
                return True
            now_enabled = enabled
    except ProxyError as e:
        report_error(e, out)
        out.print("[yellow]Filesystem changes were rolled back")
        return False

    out.print(f"[bold green]✓ {domain} is now {'active' if now_enabled else 'paused'}")
    return True


def modify_command(manager: ProxyManager, config: Config, domain: str, target: Optional[str] = None,
                   protocol: str = "http", out: Optional[Console] = None) -> bool:
    """
    Change the proxy target of a domain

    Args:
        target: Address (port or host:port); prompted for when None
    """
    out = out or console
    try:
        current = manager.get(domain)
    except ProxyError as e:
        report_error(e, out)
        return False

    out.print(f"[blue]Current proxy target: {current.target}")
    if target is None:
        new_target = InputCollector(config, manager.proxy, out).ask_target("New proxy target address (e.g. 127.0.0.1:9000)")
    else:
        try:
            new_target = build_target(target, protocol)
        except ValueError as e:
            out.print(f"[bold red]{e}")
            return False

    out.print(f"[blue]Updating target to {new_target}")
    try:
        manager.modify_target(domain, new_target)
    except ProxyError as e:
        report_error(e, out)
        out.print("[yellow]Change rolled back")
        return False

    out.print("[bold green]✓ Proxy target updated")
    return True


def hsts_command(manager: ProxyManager, domain: str, out: Optional[Console] = None) -> bool:
    """Enable HSTS for a domain"""
    out = out or console
    try:
        if not manager.enable_hsts(domain):
            out.print(f"[yellow]HSTS is already enabled for {domain}")
            return True
    except ProxyError as e:
        report_error(e, out)
        out.print("[yellow]HSTS change rolled back")
        return False

    out.print(f"[bold green]✓ HSTS enabled for {domain}")
    return True


def renew_command(manager: ProxyManager, domain: str, dry_run: Optional[bool] = None,
                  assume_yes: bool = False, out: Optional[Console] = None) -> bool:
    """
    Renew a domain's certificate

    Args:
        dry_run: Run the simulation first; asked interactively when None
        assume_yes: Skip the confirmation before the real renewal
    """
    out = out or console
    try:
        manager.get(domain)
    except ProxyError as e:
        report_error(e, out)
        return False

    if dry_run is None:
        dry_run = Confirm.ask("Run a renewal dry-run first?", default=False)

    try:
        if dry_run:
            with out.status("[bold blue]Running renewal dry-run..."):
                manager.renew(domain, dry_run=True)
            out.print("[green]✓ Renewal dry-run succeeded")

        if not assume_yes and not Confirm.ask(f"Renew the certificate for {domain} now?", default=True):
            out.print("[yellow]Operation cancelled")
            return True

        with out.status("[bold blue]Renewing certificate..."):
            status = manager.renew(domain)
    except (CertificateError, ProxyError) as e:
        report_error(e, out)
        return False

    out.print(f"[bold green]✓ Certificate renewed, nginx {status.action if status else 'reloaded'}")
    return True


def delete_command(manager: ProxyManager, domain: str, force: bool = False,
                   out: Optional[Console] = None) -> bool:
    """
    Delete a domain's certificate, then its nginx configuration

    If certbot fails, the user can still remove the nginx configuration
    after a second confirmation; the certificate may then remain valid.

    Returns:
        True if the configuration was removed
    """
    out = out or console
    try:
        manager.get(domain)
    except ProxyError as e:
        report_error(e, out)
        return False

    if not force and not Confirm.ask(f"[yellow]Permanently delete all configuration for {domain}?", default=False):
        out.print("[yellow]Operation cancelled")
        return False

    out.print("[bold blue]Step 1: deleting the certificate...")
    try:
        if manager.delete_certificate(domain):
            out.print(f"[green]✓ Certificate for {domain} deleted")
        else:
            out.print("[yellow]certbot is not installed, no certificate to delete")
    except CertificateError as e:
        report_error(e, out)
        out.print("[yellow]The certificate may not exist, or it may still be valid and remain on this host")
        if not Confirm.ask("Delete the nginx configuration anyway?", default=False):
            out.print("[yellow]Deletion aborted, nothing was changed")
            return False
        logger.warning(f"Removing configuration for {domain} although certificate deletion failed")

    out.print("[bold blue]Step 2: removing nginx configuration...")
    try:
        manager.remove(domain)
    except ProxyError as e:
        report_error(e, out)
        out.print("[bold yellow]Warning: configuration files were removed but nginx did not reload, check it manually")
        return True

    out.print(f"[bold green]✓ {domain} deleted")
    return True


def manage_domain_menu(manager: ProxyManager, config: Config, domain: str, out: Console) -> None:
    """Per-domain action menu; returns after one action or 'back'"""
    enabled = manager.proxy.is_active(domain)
    out.print(f"\n[bold]Managing [yellow]{domain}[/yellow][/bold]")
    out.print(f"Status: {_status_text(enabled)}\n")
    out.print(f"  1) {'Pause' if enabled else 'Resume'}")
    out.print("  2) Change proxy target")
    out.print("  3) Renew certificate")
    out.print("  4) Enable HSTS")
    out.print("  5) [red]Delete[/red]")
    out.print("  6) Back")

    choice = Prompt.ask("Select an option", choices=["1", "2", "3", "4", "5", "6"], default="6")
    if choice == "1":
        toggle_command(manager, domain, out=out)
    elif choice == "2":
        modify_command(manager, config, domain, out=out)
    elif choice == "3":
        renew_command(manager, domain, out=out)
    elif choice == "4":
        hsts_command(manager, domain, out=out)
    elif choice == "5":
        delete_command(manager, domain, out=out)


def manage_menu(manager: ProxyManager, config: Config, out: Optional[Console] = None) -> None:
    """Numbered list of managed domains; 'B' or Enter returns"""
    out = out or console
    while True:
        domains = manager.list_domains()
        if not domains:
            out.print("\n[yellow]No configurations created by this tool were found")
            return

        out.print("\n[bold blue]Managed reverse proxies[/bold blue]")
        for index, domain in enumerate(domains, 1):
            out.print(f"  {index}) {domain:<40} {_status_text(manager.proxy.is_active(domain))}")

        choice = Prompt.ask("\nSelect a configuration ('B' or Enter to go back)", default="").strip()
        if choice == "" or choice.lower().startswith("b"):
            return
        if not choice.isdigit() or not 1 <= int(choice) <= len(domains):
            out.print(f"[yellow]Invalid option '{choice}'")
            continue
        manage_domain_menu(manager, config, domains[int(choice) - 1], out)
