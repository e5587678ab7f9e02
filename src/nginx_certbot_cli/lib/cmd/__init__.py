"""
Command implementations for nginx-certbot-cli
"""

# Port utilities
from .port import (
    validate_port,
    normalize_address,
    build_target,
    DEFAULT_HOST,
    PROTOCOLS
)

# Domain utilities
from .domain import (
    validate_domain,
    parse_domains,
    validate_email
)

# Command implementations
from .create import create_command
from .init import init_command
from .install import bootstrap, install_command
from .manage import (
    list_command,
    toggle_command,
    modify_command,
    hsts_command,
    renew_command,
    delete_command,
    manage_menu
)
from .menu import menu_command

__all__ = [
    # Port utilities
    'validate_port',
    'normalize_address',
    'build_target',
    'DEFAULT_HOST',
    'PROTOCOLS',

    # Domain utilities
    'validate_domain',
    'parse_domains',
    'validate_email',

    # Command implementations
    'create_command',
    'init_command',
    'bootstrap',
    'install_command',
    'list_command',
    'toggle_command',
    'modify_command',
    'hsts_command',
    'renew_command',
    'delete_command',
    'manage_menu',
    'menu_command'
]
