"""
Nginx proxy manager for nginx-certbot-cli
"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ...config import Config
from ...utils import run_command, command_output, is_port_in_use, get_port_usage
from ..base import ProxyConfig, ProxyStatus, ReverseProxy, ProxyError
from . import nginxconf
from .nginxconf import NginxConfRenderer

logger = logging.getLogger(__name__)

CONF_SUFFIX = ".conf"
DISABLED_SUFFIX = ".conf.disabled"
HTTP_PORT = 80


class NginxProxy(ReverseProxy):
    """Manages nginx server blocks and the nginx service"""

    def __init__(self, config: Config, renderer: Optional[NginxConfRenderer] = None):
        """
        Initialize nginx proxy manager

        Args:
            config: Application configuration with the OS family detected
        """
        self.config = config
        self.dirs = config.get_nginx_dirs()
        self.renderer = renderer or NginxConfRenderer()

    # Paths

    def available_path(self, primary_domain: str) -> Path:
        return self.dirs['available'] / f"{primary_domain}{CONF_SUFFIX}"

    def enabled_path(self, primary_domain: str) -> Path:
        """Path whose presence marks the config as served"""
        return self.dirs['enabled'] / f"{primary_domain}{CONF_SUFFIX}"

    def disabled_path(self, primary_domain: str) -> Path:
        return self.dirs['available'] / f"{primary_domain}{DISABLED_SUFFIX}"

    def config_paths(self, primary_domain: str) -> List[Path]:
        """Every path this tool may create for a domain"""
        paths = [self.available_path(primary_domain)]
        if self.config.uses_symlinks:
            paths.append(self.enabled_path(primary_domain))
        else:
            paths.append(self.disabled_path(primary_domain))
        return paths

    def find_config_file(self, primary_domain: str) -> Optional[Path]:
        """Locate the config file of a domain, active or disabled"""
        for path in (self.available_path(primary_domain), self.disabled_path(primary_domain)):
            if path.is_file():
                return path
        return None

    def is_active(self, primary_domain: str) -> bool:
        path = self.enabled_path(primary_domain)
        if self.config.uses_symlinks:
            return path.is_symlink() or path.is_file()
        return path.is_file()

    def read_proxy_config(self, primary_domain: str) -> Optional[ProxyConfig]:
        """Parse a managed config file back into a ProxyConfig"""
        path = self.find_config_file(primary_domain)
        if path is None:
            return None
        content = path.read_text()
        return ProxyConfig(
            domains=nginxconf.parse_server_names(content) or [primary_domain],
            target=nginxconf.read_proxy_pass(content) or "",
            enabled=self.is_active(primary_domain),
            hsts=nginxconf.has_hsts(content),
            certificate=nginxconf.parse_certificate(content),
            config_file=path
        )

    # Configuration files

    def write_config(self, config: ProxyConfig, tls: bool = False) -> Path:
        """
        Render and write the server block for a proxy

        Args:
            config: ProxyConfig object
            tls: Render the redirect + TLS variant referencing the issued certificate

        Returns:
            Path of the written file
        """
        if tls:
            cert_paths = self.config.get_certificate_paths(config.primary_domain)
            content = self.renderer.render_https(
                config.domains,
                config.target,
                fullchain=cert_paths['fullchain'],
                privkey=cert_paths['privkey'],
                nginx_version=self.get_version()
            )
        else:
            content = self.renderer.render_http(config.domains, config.target)

        path = self.find_config_file(config.primary_domain) or self.available_path(config.primary_domain)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        logger.info(f"Wrote nginx configuration {path}")
        return path

    def activate(self, primary_domain: str) -> None:
        """Serve a configuration (symlink into sites-enabled, or rename back to .conf)"""
        if self.config.uses_symlinks:
            link = self.enabled_path(primary_domain)
            if not (link.is_symlink() or link.exists()):
                link.parent.mkdir(parents=True, exist_ok=True)
                link.symlink_to(self.available_path(primary_domain))
                logger.info(f"Linked {link}")
            return

        disabled = self.disabled_path(primary_domain)
        if disabled.is_file():
            disabled.rename(self.available_path(primary_domain))
            logger.info(f"Renamed {disabled} to {self.available_path(primary_domain)}")

    def deactivate(self, primary_domain: str) -> None:
        """Stop serving a configuration without deleting it"""
        if self.config.uses_symlinks:
            link = self.enabled_path(primary_domain)
            if link.is_symlink():
                link.unlink()
                logger.info(f"Removed {link}")
            elif link.exists():
                raise ProxyError(
                    f"{link} is a regular file, not a link into {self.dirs['available']}; "
                    "refusing to delete it, move it to the available directory first"
                )
            return

        active = self.available_path(primary_domain)
        if active.is_file():
            active.rename(self.disabled_path(primary_domain))
            logger.info(f"Renamed {active} to {self.disabled_path(primary_domain)}")

    def remove_config(self, primary_domain: str) -> List[Path]:
        """
        Delete every file and activation artifact of a domain

        Returns:
            The paths that were removed
        """
        removed = []
        for path in self.config_paths(primary_domain):
            if path.is_symlink() or path.exists():
                path.unlink()
                removed.append(path)
                logger.info(f"Removed {path}")
        return removed

    # Service control

    def service_command(self, action: str) -> List[str]:
        """Service manager command for start/stop/status"""
        if self.config.os_family == "alpine":
            return ["rc-service", self.config.nginx_service, action]
        if action == "status":
            return ["systemctl", "is-active", "--quiet", self.config.nginx_service]
        return ["systemctl", action, self.config.nginx_service]

    def get_version(self) -> Optional[Tuple[int, ...]]:
        """Installed nginx version, or None if it cannot be determined"""
        result = run_command(["nginx", "-v"])
        # nginx prints its version on stderr
        return nginxconf.parse_version(command_output(result))

    def validate_config(self) -> bool:
        """
        Validate the full nginx configuration with 'nginx -t'

        Returns:
            True if valid

        Raises:
            ProxyError: If validation fails
        """
        result = run_command(["nginx", "-t"])
        if result.returncode == 0:
            logger.info("Configuration validation successful")
            return True

        output = command_output(result)
        logger.error(f"Configuration validation failed: {output}")
        raise ProxyError("Nginx configuration test failed", output)

    def is_running(self) -> bool:
        """Check whether the nginx service reports itself active"""
        return run_command(self.service_command("status")).returncode == 0

    def start(self) -> ProxyStatus:
        """
        Start nginx through the service manager

        Raises:
            ProxyError: If port 80 is taken or the service does not come up
        """
        if is_port_in_use(HTTP_PORT):
            raise ProxyError(
                f"Port {HTTP_PORT} is already in use, stop the service occupying it first",
                get_port_usage(HTTP_PORT)
            )

        result = run_command(self.service_command("start"))
        if self.is_running():
            logger.info("Nginx started")
            return ProxyStatus(running=True, action="started")

        output = command_output(result)
        logger.error(f"Nginx failed to start: {output}")
        raise ProxyError("Nginx failed to start", output)

    def reload(self) -> ProxyStatus:
        """
        Reload the running nginx

        Raises:
            ProxyError: If nginx rejects the reload
        """
        result = run_command(["nginx", "-s", "reload"])
        if result.returncode == 0:
            logger.info("Nginx configuration reloaded")
            return ProxyStatus(running=True, action="reloaded")

        output = command_output(result)
        logger.error(f"Nginx reload failed: {output}")
        raise ProxyError("Nginx reload failed", output)

    def apply_config(self) -> ProxyStatus:
        """
        Apply the on-disk configuration: reload if running, otherwise start

        Returns:
            ProxyStatus object

        Raises:
            ProxyError: If the reload or start fails
        """
        if self.is_running():
            return self.reload()
        logger.warning("Nginx is not running, attempting to start it")
        return self.start()

    def port_available(self) -> bool:
        """True if nginx may bind port 80 (it is free, or nginx already holds it)"""
        return self.is_running() or not is_port_in_use(HTTP_PORT)

    def list_config_files(self) -> List[Path]:
        """
        Config files in the available directory, active or disabled

        The enabled directory only holds activation links, so it is not scanned.
        """
        directory = self.dirs['available']
        if not directory.is_dir():
            return []
        return [
            path for path in sorted(directory.iterdir())
            if (path.name.endswith(CONF_SUFFIX) or path.name.endswith(DISABLED_SUFFIX)) and path.is_file()
        ]

    @staticmethod
    def domain_from_filename(path: Path) -> str:
        name = path.name
        if name.endswith(DISABLED_SUFFIX):
            return name[:-len(DISABLED_SUFFIX)]
        return name[:-len(CONF_SUFFIX)]
