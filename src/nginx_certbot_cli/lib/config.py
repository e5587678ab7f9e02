"""
Configuration management for nginx-certbot-cli
"""
import logging
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
import yaml
from rich.prompt import Prompt, IntPrompt

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_DIR = Path("/etc/nginx-certbot-cli")
CONFIG_FILE = CONFIG_DIR / "config.yaml"
PREFERENCE_FILE = CONFIG_DIR / "last_email"

DEFAULT_IP_SERVICES = [
    "https://ifconfig.me",
    "https://ip.sb",
    "https://api.ipify.org",
    "https://ipinfo.io/ip",
]

DEFAULT_DOH_SERVICES = [
    "https://dns.google/resolve",
    "https://dns.alidns.com/resolve",
]

CERTBOT_MODES = ["nginx", "standalone"]

_PATH_FIELDS = ['nginx_root', 'letsencrypt_dir', 'preference_file']


def get_config_file() -> Path:
    """Location of the YAML configuration file"""
    return Path(os.getenv("NGINX_CERTBOT_CONFIG", str(CONFIG_FILE))).expanduser()


@dataclass
class Config:
    """Configuration data"""
    # Certificate issuance
    certbot_mode: str = "nginx"  # or "standalone"
    letsencrypt_dir: Path = Path("/etc/letsencrypt")
    hsts_max_age: int = 31536000

    # Web server
    nginx_root: Path = Path("/etc/nginx")
    nginx_service: str = "nginx"

    # Host environment, filled in by the environment probe
    os_family: str = ""
    package_manager: str = ""

    # Persisted last-used email
    preference_file: Path = PREFERENCE_FILE

    # Public IP and DNS checks
    ip_services: List[str] = field(default_factory=lambda: list(DEFAULT_IP_SERVICES))
    doh_services: List[str] = field(default_factory=lambda: list(DEFAULT_DOH_SERVICES))
    ip_timeout: float = 3.0
    doh_timeout: float = 2.0

    def __post_init__(self):
        for key in _PATH_FIELDS:
            value = getattr(self, key)
            if not isinstance(value, Path):
                setattr(self, key, Path(value).expanduser())
        if self.certbot_mode not in CERTBOT_MODES:
            raise ConfigError(
                f"Unsupported certbot mode '{self.certbot_mode}', expected one of: {', '.join(CERTBOT_MODES)}"
            )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'Config':
        """Load configuration from file, falling back to defaults"""
        config_file = path or get_config_file()
        data = {}

        if config_file.exists():
            try:
                with open(config_file) as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to read configuration {config_file}: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration {config_file} must be a mapping")
            logger.debug(f"Loaded configuration from {config_file}")
        else:
            logger.debug(f"No configuration at {config_file}, using defaults")

        # Environment variables take precedence over the config file
        env_mode = os.getenv("NGINX_CERTBOT_MODE")
        env_email_file = os.getenv("NGINX_CERTBOT_EMAIL_FILE")
        env_nginx_root = os.getenv("NGINX_ROOT")
        env_letsencrypt = os.getenv("LETSENCRYPT_DIR")

        if env_mode:
            data['certbot_mode'] = env_mode
        if env_email_file:
            data['preference_file'] = env_email_file
        if env_nginx_root:
            data['nginx_root'] = env_nginx_root
        if env_letsencrypt:
            data['letsencrypt_dir'] = env_letsencrypt

        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration {config_file}: {e}")

    def save(self, path: Optional[Path] = None) -> Path:
        """Save configuration to file"""
        config_file = path or get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        # Convert to dict and ensure paths are strings; detected values are not persisted
        data = asdict(self)
        for key in _PATH_FIELDS:
            data[key] = str(data[key])
        data.pop('os_family')
        data.pop('package_manager')

        with open(config_file, 'w') as f:
            yaml.safe_dump(data, f, sort_keys=False)
        return config_file

    @classmethod
    def initialize_interactive(cls, path: Optional[Path] = None) -> 'Config':
        """Initialize configuration interactively"""
        print("Welcome to nginx-certbot-cli setup!")
        print("\nPlease provide the following information:")

        defaults = cls()
        config_data = {
            'certbot_mode': Prompt.ask(
                "\nCertificate issuance mode",
                choices=CERTBOT_MODES,
                default=defaults.certbot_mode
            ),
            'nginx_root': Prompt.ask("Nginx configuration root", default=str(defaults.nginx_root)),
            'letsencrypt_dir': Prompt.ask("Certbot configuration directory", default=str(defaults.letsencrypt_dir)),
            'preference_file': Prompt.ask("File storing the last used email", default=str(defaults.preference_file)),
            'hsts_max_age': IntPrompt.ask("HSTS max-age in seconds", default=defaults.hsts_max_age),
        }

        config = cls(**config_data)
        config.save(path)
        return config

    def get_nginx_dirs(self) -> Dict[str, Path]:
        """
        Get the nginx include directories for the detected OS family

        Returns:
            Mapping with 'available' (where configs are written) and 'enabled'
            (where activation symlinks live; same as 'available' when the OS
            convention toggles by renaming instead)
        """
        if self.os_family == "alpine":
            http_dir = self.nginx_root / 'http.d'
            return {'available': http_dir, 'enabled': http_dir}
        return {
            'available': self.nginx_root / 'sites-available',
            'enabled': self.nginx_root / 'sites-enabled'
        }

    @property
    def uses_symlinks(self) -> bool:
        """True when activation is a symlink in a separate enabled directory"""
        return self.os_family != "alpine"

    def get_certificate_paths(self, primary_domain: str) -> Dict[str, Path]:
        """Get the certificate and key paths certbot issues for a domain"""
        live_dir = self.letsencrypt_dir / 'live' / primary_domain
        return {
            'fullchain': live_dir / 'fullchain.pem',
            'privkey': live_dir / 'privkey.pem'
        }

    def get_renewal_file(self, primary_domain: str) -> Path:
        """Get certbot's renewal record for a domain"""
        return self.letsencrypt_dir / 'renewal' / f"{primary_domain}.conf"


class Preferences:
    """Persisted single-value preferences (last used email)"""

    def __init__(self, config: Config):
        self.path = config.preference_file

    def load_last_email(self) -> str:
        """Return the last accepted email or an empty string"""
        try:
            if self.path.exists():
                return self.path.read_text().strip()
        except OSError as e:
            logger.warning(f"Could not read {self.path}: {e}")
        return ""

    def save_last_email(self, email: str) -> bool:
        """Persist the email, returning False if the file cannot be written"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(f"{email}\n")
            return True
        except OSError as e:
            logger.warning(f"Could not save email to {self.path}: {e}")
            return False


class ConfigError(Exception):
    """Configuration error"""
    pass
