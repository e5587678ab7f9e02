"""
Host environment probe: privileges, OS family and dependency installation
"""
import dataclasses
import logging
import os
from pathlib import Path
from typing import Dict, List, Tuple

from .config import Config
from .utils import run_command, command_exists, command_output

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")
DEBIAN_VERSION = Path("/etc/debian_version")
ALPINE_RELEASE = Path("/etc/alpine-release")

# OS id -> (family, package manager)
SUPPORTED_SYSTEMS: Dict[str, Tuple[str, str]] = {
    'debian': ("debian", "apt-get"),
    'ubuntu': ("debian", "apt-get"),
    'alpine': ("alpine", "apk"),
}

# Package providing the certbot nginx integration, per family
NGINX_PLUGIN_PACKAGES = {
    'debian': "python3-certbot-nginx",
    'alpine': "certbot-nginx",
}

REQUIRED_COMMANDS = ["nginx", "certbot"]


class SystemSetupError(Exception):
    """Fatal host environment problem"""
    pass


class PrivilegeError(SystemSetupError):
    """Not running as root"""
    pass


class UnsupportedSystemError(SystemSetupError):
    """Operating system is not supported"""
    pass


class DependencyError(SystemSetupError):
    """Dependency installation failed"""
    pass


def check_privileges() -> None:
    """Require root privileges"""
    if os.geteuid() != 0:
        raise PrivilegeError("This tool must be run as root or with sudo.")


def _parse_os_release(content: str) -> Dict[str, str]:
    values = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, _, value = line.partition('=')
        values[key] = value.strip().strip('"\'')
    return values


def detect_os_family() -> Tuple[str, str]:
    """
    Detect the OS family and its package manager

    Returns:
        Tuple of (os_family, package_manager)

    Raises:
        UnsupportedSystemError: If the OS is neither Debian-like nor Alpine
    """
    candidates: List[str] = []
    if OS_RELEASE.exists():
        release = _parse_os_release(OS_RELEASE.read_text())
        candidates.append(release.get('ID', '').lower())
        candidates.extend(release.get('ID_LIKE', '').lower().split())
    elif DEBIAN_VERSION.exists():
        candidates.append('debian')
    elif ALPINE_RELEASE.exists():
        candidates.append('alpine')

    for os_id in candidates:
        if os_id in SUPPORTED_SYSTEMS:
            logger.info(f"Detected OS '{os_id}' -> {SUPPORTED_SYSTEMS[os_id]}")
            return SUPPORTED_SYSTEMS[os_id]

    name = next((c for c in candidates if c), os.uname().sysname)
    raise UnsupportedSystemError(f"Unsupported operating system: {name}")


def probe_environment(config: Config) -> Config:
    """Return a copy of the config with the OS family and package manager filled in"""
    if config.os_family and config.package_manager:
        return config
    os_family, package_manager = detect_os_family()
    return dataclasses.replace(config, os_family=os_family, package_manager=package_manager)


def _plugin_installed(config: Config) -> bool:
    package = NGINX_PLUGIN_PACKAGES[config.os_family]
    if config.os_family == "debian":
        result = run_command(["dpkg-query", "-W", "-f=${Status}", package])
        return result.returncode == 0 and "ok installed" in result.stdout
    result = run_command(["apk", "info", "-e", package])
    return result.returncode == 0


def missing_packages(config: Config) -> List[str]:
    """List packages that need to be installed"""
    packages = [cmd for cmd in REQUIRED_COMMANDS if not command_exists(cmd)]
    if not _plugin_installed(config):
        packages.append(NGINX_PLUGIN_PACKAGES[config.os_family])
    return packages


def install_dependencies(config: Config) -> List[str]:
    """
    Install nginx, certbot and the certbot nginx plugin when missing

    Returns:
        The packages that were installed (empty if nothing was missing)

    Raises:
        DependencyError: If the package manager fails
    """
    packages = missing_packages(config)
    if not packages:
        logger.info("All dependencies are installed")
        return []

    logger.info(f"Installing packages: {' '.join(packages)}")
    if config.package_manager == "apt-get":
        steps = [["apt-get", "update", "-y"], ["apt-get", "install", "-y", *packages]]
    else:
        steps = [["apk", "update"], ["apk", "add", *packages]]

    for step in steps:
        result = run_command(step)
        if result.returncode != 0:
            raise DependencyError(
                f"'{' '.join(step)}' failed with exit status {result.returncode}:\n{command_output(result)}"
            )
    return packages


def disable_default_site(config: Config) -> bool:
    """
    Disable the distribution's default nginx site

    Returns:
        True if something was disabled
    """
    if config.os_family == "alpine":
        default_conf = config.nginx_root / 'http.d' / 'default.conf'
        if default_conf.is_file():
            default_conf.rename(default_conf.with_name('default.conf.bak'))
            logger.info(f"Moved {default_conf} aside")
            return True
        return False

    default_link = config.nginx_root / 'sites-enabled' / 'default'
    if default_link.is_symlink():
        default_link.unlink()
        logger.info(f"Removed {default_link}")
        return True
    return False
