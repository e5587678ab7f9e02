"""
Certbot client wrapper for nginx-certbot-cli
"""
import logging
import re
from typing import List

from ..config import Config
from ..proxy.nginx import NginxProxy
from ..utils import run_command, command_output, command_exists
from .base import CertificateProvider, CertificateError

logger = logging.getLogger(__name__)

RELOAD_HOOK = "nginx -s reload"
RENEWAL_SECTION = "[renewalparams]"

_SECTION_RE = re.compile(r'^\s*\[[^\]]+\]\s*$')


class CertbotClient(CertificateProvider):
    """Drives the certbot command line"""

    def __init__(self, config: Config, proxy: NginxProxy):
        """
        Initialize certbot client

        Args:
            config: Application configuration
            proxy: Nginx manager, used to build service hooks
        """
        self.config = config
        self.proxy = proxy

    @property
    def standalone(self) -> bool:
        return self.config.certbot_mode == "standalone"

    def is_installed(self) -> bool:
        return command_exists("certbot")

    def hook_commands(self) -> dict:
        """Shell commands stopping and starting nginx around headless renewal"""
        return {
            'pre_hook': " ".join(self.proxy.service_command("stop")),
            'post_hook': " ".join(self.proxy.service_command("start"))
        }

    def _run(self, cmd: List[str], failure: str) -> bool:
        logger.info(f"Running certbot: {' '.join(cmd)}")
        result = run_command(cmd)
        if result.returncode != 0:
            output = command_output(result)
            logger.error(f"{failure}: {output}")
            raise CertificateError(failure, output)
        return True

    def build_issue_command(self, domains: List[str], email: str, dry_run: bool = False) -> List[str]:
        """Assemble the certbot command line for issuance"""
        primary = domains[0]
        if self.standalone:
            hooks = self.hook_commands()
            cmd = ["certbot", "certonly", "--standalone",
                   "--pre-hook", hooks['pre_hook'], "--post-hook", hooks['post_hook']]
        elif dry_run:
            cmd = ["certbot", "certonly", "--nginx"]
        else:
            cmd = ["certbot", "--nginx"]

        if dry_run:
            cmd.append("--dry-run")
        cmd += ["--cert-name", primary]
        for domain in domains:
            cmd += ["-d", domain]
        cmd += ["--email", email, "--agree-tos", "--no-eff-email", "-n", "--keep-until-expiring"]
        if not self.standalone and not dry_run:
            cmd.append("--redirect")
        return cmd

    def issue(self, domains: List[str], email: str, dry_run: bool = False) -> bool:
        """
        Obtain a certificate for all domains as one multi-SAN request

        Raises:
            CertificateError: If certbot fails
        """
        failure = "Certificate dry-run failed" if dry_run else "Certificate issuance failed"
        return self._run(self.build_issue_command(domains, email, dry_run), failure)

    def renew(self, primary_domain: str, dry_run: bool = False) -> bool:
        """
        Renew one certificate; the real renewal reloads nginx through a deploy hook

        Raises:
            CertificateError: If certbot fails
        """
        cmd = ["certbot", "renew", "--cert-name", primary_domain]
        if dry_run:
            cmd.append("--dry-run")
            failure = "Renewal dry-run failed"
        else:
            cmd += ["--deploy-hook", RELOAD_HOOK]
            failure = "Certificate renewal failed"
        return self._run(cmd, failure)

    def delete(self, primary_domain: str) -> bool:
        """
        Delete a certificate and its renewal record

        Raises:
            CertificateError: If certbot fails
        """
        cmd = ["certbot", "delete", "--cert-name", primary_domain, "--non-interactive"]
        return self._run(cmd, f"Certificate deletion failed for {primary_domain}")

    def ensure_renewal_hooks(self, primary_domain: str) -> bool:
        """
        Make sure the renewal record stops/starts nginx around renewal

        Returns:
            True if the record was changed, False if hooks were already present

        Raises:
            CertificateError: If the renewal record does not exist
        """
        renewal_file = self.config.get_renewal_file(primary_domain)
        if not renewal_file.is_file():
            raise CertificateError(f"Renewal record not found: {renewal_file}")

        lines = renewal_file.read_text().splitlines()
        hooks = self.hook_commands()

        try:
            start = next(i for i, line in enumerate(lines) if line.strip() == RENEWAL_SECTION)
        except StopIteration:
            lines += ["", RENEWAL_SECTION]
            start = len(lines) - 1

        end = next(
            (i for i in range(start + 1, len(lines)) if _SECTION_RE.match(lines[i])),
            len(lines)
        )
        present = {line.split('=', 1)[0].strip() for line in lines[start + 1:end] if '=' in line}

        missing = [f"{key} = {value}" for key, value in hooks.items() if key not in present]
        if not missing:
            logger.info(f"Renewal hooks already present in {renewal_file}")
            return False

        lines[start + 1:start + 1] = missing
        renewal_file.write_text("\n".join(lines) + "\n")
        logger.info(f"Added renewal hooks to {renewal_file}")
        return True
