"""
Interactive collection of the domains, proxy target and contact email
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console
from rich.prompt import Prompt, Confirm

import nginx_certbot_cli.lib.utils as utils

from ..config import Config, Preferences
from ..proxy.base import ProxyConfig
from ..proxy.nginx import NginxProxy
from .domain import parse_domains, validate_email
from .port import build_target, PROTOCOLS

logger = logging.getLogger(__name__)

CANCEL_SENTINEL = "q"


class InputCancelled(Exception):
    """The user aborted the prompt sequence"""
    pass


@dataclass
class ProxyRequest:
    """Validated input for a new proxy"""
    domains: List[str]
    target: str
    email: str

    @property
    def primary_domain(self) -> str:
        return self.domains[0]

    def to_proxy_config(self) -> ProxyConfig:
        return ProxyConfig(domains=list(self.domains), target=self.target)


class InputCollector:
    """Prompts until every answer validates"""

    def __init__(self, config: Config, proxy: NginxProxy, console: Optional[Console] = None):
        self.config = config
        self.proxy = proxy
        self.preferences = Preferences(config)
        self.console = console or Console()

    def ask_domains(self) -> List[str]:
        """
        Prompt for the domain list

        Raises:
            InputCancelled: If the user enters the cancel sentinel
        """
        while True:
            answer = Prompt.ask(
                "Domains, separated by spaces (e.g. example.com www.example.com), "
                f"'{CANCEL_SENTINEL}' to cancel",
                default=""
            ).strip()
            if answer == CANCEL_SENTINEL:
                raise InputCancelled()
            try:
                domains = parse_domains(answer)
            except ValueError as e:
                self.console.print(f"[yellow]{e}, please enter the domains again")
                continue

            if self.proxy.find_config_file(domains[0]) is not None:
                self.console.print(f"[yellow]A configuration for {domains[0]} already exists")
                choice = Prompt.ask(
                    "1) Overwrite it  2) Enter different domains",
                    choices=["1", "2"],
                    default="2"
                )
                if choice != "1":
                    continue

            if not self.check_dns(domains):
                if not Confirm.ask("One or more domains do not resolve to this server. Continue anyway?", default=False):
                    continue
            return domains

    def check_dns(self, domains: List[str]) -> bool:
        """
        Compare each domain's A record with this host's public IP

        Returns:
            False if any domain resolves elsewhere; True when all match or the
            public IP is unknown
        """
        server_ip = utils.get_public_ip(self.config.ip_services, timeout=self.config.ip_timeout)
        if not server_ip:
            self.console.print("[yellow]Could not detect this server's public IP, make sure DNS points here")
            return True

        self.console.print("[bold blue]Checking DNS A records...")
        all_match = True
        for domain in domains:
            resolved = utils.resolve_domain(domain, self.config.doh_services, timeout=self.config.doh_timeout)
            if resolved == server_ip:
                self.console.print(f"  [green]✓ {domain} -> {resolved}")
            else:
                self.console.print(f"  [red]✗ {domain} -> {resolved or 'unresolved'} (expected {server_ip})")
                all_match = False
        return all_match

    def ask_target(self, prompt: str = "Proxy target address (e.g. 127.0.0.1:8080 or just 8080)") -> str:
        """Prompt for protocol and address, returning e.g. http://127.0.0.1:8080"""
        protocol = Prompt.ask("Target protocol", choices=PROTOCOLS, default="http")
        while True:
            address = Prompt.ask(prompt, default="")
            try:
                target = build_target(address, protocol)
            except ValueError as e:
                self.console.print(f"[yellow]{e}")
                continue
            if address.strip().isdigit():
                self.console.print(f"[blue]Using {target}")
            return target

    def ask_email(self) -> str:
        """Prompt for the contact email, offering and updating the saved one"""
        last_email = self.preferences.load_last_email()
        while True:
            email = Prompt.ask("Email address for certificate notices", default=last_email).strip()
            if not validate_email(email):
                self.console.print("[yellow]Invalid email address")
                continue
            if not self.preferences.save_last_email(email):
                self.console.print(f"[yellow]Warning: could not save email to {self.preferences.path}")
            return email

    def collect(self) -> Optional[ProxyRequest]:
        """
        Run the full prompt sequence

        Returns:
            ProxyRequest, or None if the user cancelled
        """
        self.console.print("[bold]Enter the proxy configuration:[/bold]")
        try:
            domains = self.ask_domains()
        except InputCancelled:
            logger.info("Input cancelled by user")
            return None
        target = self.ask_target()
        email = self.ask_email()
        return ProxyRequest(domains=domains, target=target, email=email)
