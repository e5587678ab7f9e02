"""
Create command implementation: HTTP staging, certificate issuance, TLS
"""
import logging
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm

from ..cert.base import CertificateError
from ..config import Config
from ..manager import ProxyManager
from ..proxy.base import ProxyError
from ..system import disable_default_site
from ..transaction import ConfigTransaction
from ..utils import get_port_usage
from .input import InputCollector, ProxyRequest
from .output import console, report_error

logger = logging.getLogger(__name__)


def _obtain_certificate(manager: ProxyManager, request: ProxyRequest, out: Console) -> bool:
    """
    Optional dry-run, then the real issuance

    Returns:
        False if the user declined after the dry-run

    Raises:
        CertificateError: If certbot fails
    """
    domains = " ".join(request.domains)
    out.print(f"[bold blue]Preparing certificate for {domains}")

    if Confirm.ask("Run a certificate dry-run first?", default=False):
        with out.status("[bold blue]Running certificate dry-run..."):
            manager.certs.issue(request.domains, request.email, dry_run=True)
        out.print("[green]✓ Dry-run succeeded")
        if not Confirm.ask("Request the certificate now?", default=True):
            return False

    with out.status("[bold blue]Requesting certificate..."):
        manager.certs.issue(request.domains, request.email)
    out.print("[bold green]✓ Certificate issued")
    return True


def _restore(manager: ProxyManager, txn: ConfigTransaction, out: Console) -> None:
    out.print("[yellow]Removing the configuration written for this attempt...")
    try:
        error = manager.restore(txn)
    except ProxyError as e:
        report_error(e, out)
        return
    if error is not None:
        report_error(error, out)
        out.print("[bold yellow]Warning: nginx could not reload, check its configuration manually")
    else:
        out.print("[yellow]Previous configuration restored")


def _post_install(manager: ProxyManager, primary: str, out: Console) -> None:
    out.print("\n[blue]HSTS (HTTP Strict Transport Security) tells browsers to only use HTTPS for this site.")
    if Confirm.ask(f"Enable HSTS for {primary}?", default=False):
        try:
            if manager.enable_hsts(primary):
                out.print("[bold green]✓ HSTS enabled")
            else:
                out.print("[yellow]HSTS is already enabled")
        except ProxyError as e:
            report_error(e, out)
            out.print("[yellow]HSTS change rolled back")

    try:
        with out.status("[bold blue]Testing automatic renewal..."):
            manager.certs.renew(primary, dry_run=True)
        out.print("[green]✓ Automatic renewal works")
    except CertificateError as e:
        report_error(e, out)
        out.print(f"[yellow]Warning: renewal test for {primary} failed, the current certificate is unaffected")


def create_command(config: Config, manager: ProxyManager, out: Optional[Console] = None) -> bool:
    """
    Collect input, serve HTTP, issue the certificate and enable TLS

    Any failure before the certificate is in place restores the previous
    on-disk state and reloads nginx.

    Returns:
        True if the proxy was created
    """
    out = out or console
    proxy = manager.proxy

    if disable_default_site(config):
        out.print("[blue]Disabled the default nginx site")

    request = InputCollector(config, proxy, out).collect()
    if request is None:
        out.print("[yellow]Input cancelled, nothing was changed")
        return False

    primary = request.primary_domain
    out.print(f"[blue]Proxy target: {request.target}")

    if not proxy.port_available():
        out.print("[bold red]Port 80 is in use by another program, stop it before continuing")
        usage = get_port_usage(80)
        if usage:
            out.print(usage, markup=False)
        return False

    proxy_config = request.to_proxy_config()
    with ConfigTransaction(proxy.config_paths(primary)) as txn:
        try:
            path = manager.stage_http(proxy_config)
            out.print(f"[green]✓ Serving {primary} over HTTP ({path})")

            if not _obtain_certificate(manager, request, out):
                out.print("[yellow]Certificate request cancelled")
                _restore(manager, txn, out)
                return False

            if config.certbot_mode == "standalone":
                manager.install_tls(proxy_config)
                out.print("[green]✓ TLS configuration installed, renewal hooks registered")
            txn.commit()
        except (ProxyError, CertificateError) as e:
            report_error(e, out)
            if isinstance(e, ProxyError) and config.certbot_mode == "standalone":
                out.print(f"[yellow]If the certificate was issued, remove it with: certbot delete --cert-name {primary}")
            _restore(manager, txn, out)
            return False
        except OSError as e:
            report_error(ProxyError(f"Could not write the nginx configuration for {primary}: {e}"), out)
            _restore(manager, txn, out)
            return False

    _post_install(manager, primary, out)

    cert_paths = config.get_certificate_paths(primary)
    out.print("\n[bold green]✓ All done!")
    out.print(f"\n[bold]{primary} is now served over HTTPS: [link=https://{primary}]https://{primary}[/link]")
    out.print("\n[bold]Configuration Details:[/bold]")
    out.print(f"  - [blue]Domains: [white]{' '.join(request.domains)}")
    out.print(f"  - [blue]Target: [white]{request.target}")
    out.print(f"  - [blue]Nginx config: [white]{proxy.find_config_file(primary)}")
    out.print(f"  - [blue]Certificate: [white]{cert_paths['fullchain'].parent}")
    return True
