"""
Core library for nginx-certbot-cli
"""

from .config import Config, ConfigError, Preferences
from .factory import ProxyProviderFactory, CertificateProviderFactory, create_manager
from .manager import ProxyManager
from .transaction import ConfigTransaction

# Import utils module, not individual functions
import nginx_certbot_cli.lib.utils as utils

__all__ = [
    "Config",
    "ConfigError",
    "Preferences",
    "ProxyProviderFactory",
    "CertificateProviderFactory",
    "create_manager",
    "ProxyManager",
    "ConfigTransaction",
    "utils"
]
