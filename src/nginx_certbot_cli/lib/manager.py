"""
Lifecycle operations on managed proxy configurations
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional

from .cert.base import CertificateProvider
from .config import Config
from .proxy.base import ProxyConfig, ProxyStatus, ProxyError
from .proxy.nginx import NginxProxy
from .proxy.nginx import nginxconf
from .transaction import ConfigTransaction

logger = logging.getLogger(__name__)


class ProxyManager:
    """
    Discovers tool-managed nginx configs and changes them transactionally

    Every mutation snapshots the domain's paths, applies the change, runs
    'nginx -t', applies the config to the running server and commits. Any
    failure restores the snapshot before the error propagates.
    """

    def __init__(self, config: Config, proxy: NginxProxy, certs: CertificateProvider):
        self.config = config
        self.proxy = proxy
        self.certs = certs

    # Discovery

    def list_domains(self) -> List[str]:
        """Primary domains of every config file carrying the marker comment"""
        domains = set()
        for path in self.proxy.list_config_files():
            try:
                content = path.read_text()
            except OSError as e:
                logger.warning(f"Could not read {path}: {e}")
                continue
            if nginxconf.has_marker(content):
                domains.add(self.proxy.domain_from_filename(path))
        return sorted(domains)

    def discover(self) -> List[ProxyConfig]:
        """Managed proxies parsed from their config files"""
        proxies = []
        for domain in self.list_domains():
            proxy_config = self.proxy.read_proxy_config(domain)
            if proxy_config is not None:
                proxies.append(proxy_config)
        return proxies

    def get(self, domain: str) -> ProxyConfig:
        """
        Look up one managed proxy

        Raises:
            ProxyError: If the domain has no managed config
        """
        proxy_config = None
        if domain in self.list_domains():
            proxy_config = self.proxy.read_proxy_config(domain)
        if proxy_config is None:
            raise ProxyError(f"No managed configuration found for {domain}")
        return proxy_config

    # Transactional core

    def _reapply(self, error: ProxyError) -> ProxyError:
        """Re-apply the restored configuration after a failed apply"""
        try:
            self.proxy.apply_config()
            return error
        except ProxyError as e:
            logger.warning(f"Could not re-apply restored configuration: {e}")
            return ProxyError(
                f"{error.message}; changes were rolled back but nginx could not apply the "
                "restored configuration, manual intervention is needed",
                "\n".join(part for part in (error.output, e.output) if part)
            )

    def _commit_change(self, domain: str, mutate: Callable[[], None], apply: bool = True) -> Optional[ProxyStatus]:
        """
        Snapshot, mutate, validate, apply and commit, restoring on failure

        Raises:
            ProxyError: If validation or apply fails (after rollback)
        """
        stage = "mutate"
        try:
            with ConfigTransaction(self.proxy.config_paths(domain)) as txn:
                mutate()
                stage = "validate"
                self.proxy.validate_config()
                status = None
                if apply:
                    stage = "apply"
                    status = self.proxy.apply_config()
                txn.commit()
                return status
        except ProxyError as e:
            if stage == "apply":
                raise self._reapply(e)
            raise

    # Operations

    def toggle(self, domain: str) -> bool:
        """
        Switch a domain between served and paused

        Returns:
            The new enabled state

        Raises:
            ProxyError: If nginx is already misconfigured or the change fails
        """
        self.get(domain)
        try:
            self.proxy.validate_config()
        except ProxyError as e:
            raise ProxyError(
                "Nginx configuration is already invalid, fix it before toggling", e.output
            )

        enabled = self.proxy.is_active(domain)
        if enabled:
            self._commit_change(domain, lambda: self.proxy.deactivate(domain))
        else:
            self._commit_change(domain, lambda: self.proxy.activate(domain))
        logger.info(f"{domain} is now {'paused' if enabled else 'served'}")
        return not enabled

    def set_enabled(self, domain: str, enabled: bool) -> bool:
        """
        Enable or disable a domain

        Returns:
            True if the state changed
        """
        self.get(domain)
        if self.proxy.is_active(domain) == enabled:
            return False
        self.toggle(domain)
        return True

    def modify_target(self, domain: str, target: str) -> str:
        """
        Point a domain's proxy_pass at a new target

        Returns:
            The previous target
        """
        self.get(domain)
        path = self.proxy.find_config_file(domain)
        content = path.read_text()
        previous = nginxconf.read_proxy_pass(content)

        def mutate():
            try:
                path.write_text(nginxconf.replace_proxy_pass(content, target))
            except ValueError as e:
                raise ProxyError(str(e))

        self._commit_change(domain, mutate, apply=self.proxy.is_active(domain))
        logger.info(f"{domain}: proxy target changed from {previous} to {target}")
        return previous

    def enable_hsts(self, domain: str) -> bool:
        """
        Add a Strict-Transport-Security header to the TLS block

        Returns:
            False if the header was already present

        Raises:
            ProxyError: If there is no TLS block or the change fails
        """
        self.get(domain)
        path = self.proxy.find_config_file(domain)
        content = path.read_text()
        if nginxconf.has_hsts(content):
            logger.warning(f"HSTS already enabled for {domain}")
            return False

        def mutate():
            try:
                path.write_text(nginxconf.insert_hsts(content, self.config.hsts_max_age))
            except ValueError as e:
                raise ProxyError(str(e))

        self._commit_change(domain, mutate, apply=self.proxy.is_active(domain))
        logger.info(f"HSTS enabled for {domain}")
        return True

    def delete_certificate(self, domain: str) -> bool:
        """
        Delete the domain's certificate through certbot

        Returns:
            False if certbot is not installed and nothing was attempted

        Raises:
            CertificateError: If certbot fails
        """
        if not self.certs.is_installed():
            logger.warning("certbot is not installed, skipping certificate deletion")
            return False
        return self.certs.delete(domain)

    def remove(self, domain: str) -> List[Path]:
        """
        Remove a domain's config files and reload nginx

        Returns:
            Removed paths

        Raises:
            ProxyError: If nginx cannot apply the remaining configuration
        """
        removed = self.proxy.remove_config(domain)
        self.proxy.apply_config()
        return removed

    def renew(self, domain: str, dry_run: bool = False) -> Optional[ProxyStatus]:
        """
        Renew one certificate, reloading nginx after a real renewal

        Raises:
            CertificateError: If certbot fails
            ProxyError: If the reload fails
        """
        self.certs.renew(domain, dry_run=dry_run)
        if dry_run:
            return None
        return self.proxy.apply_config()

    # Creation stages

    def stage_http(self, proxy_config: ProxyConfig) -> Path:
        """
        Write and serve the HTTP-only config that precedes issuance

        Raises:
            ProxyError: If nginx rejects the config
        """
        path = self.proxy.write_config(proxy_config, tls=False)
        self.proxy.activate(proxy_config.primary_domain)
        self.proxy.validate_config()
        self.proxy.apply_config()
        return path

    def install_tls(self, proxy_config: ProxyConfig) -> Path:
        """
        Write and serve the TLS config for an issued certificate and register
        the renewal hooks (standalone issuance)

        Raises:
            ProxyError: If nginx rejects the config
            CertificateError: If the renewal record is missing
        """
        path = self.proxy.write_config(proxy_config, tls=True)
        self.proxy.validate_config()
        self.proxy.apply_config()
        self.certs.ensure_renewal_hooks(proxy_config.primary_domain)
        return path

    def restore(self, transaction: ConfigTransaction) -> Optional[ProxyError]:
        """
        Roll back a failed creation and reload nginx

        Returns:
            The error if nginx could not apply the restored state, else None
        """
        transaction.rollback()
        try:
            self.proxy.apply_config()
            return None
        except ProxyError as e:
            logger.warning(f"Nginx could not apply the restored configuration: {e}")
            return e
