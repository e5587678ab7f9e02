"""
Init command implementation for nginx-certbot-cli
"""
import typer

from ..config import Config, ConfigError, get_config_file
from .output import console


def init_command():
    """Write the configuration file interactively"""
    try:
        config = Config.initialize_interactive()
    except (ConfigError, OSError) as e:
        console.print(f"[bold red]Error: {str(e)}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓ Configuration saved to {get_config_file()}")
    console.print(f"\nCertificates will be requested in '{config.certbot_mode}' mode. Run 'nginx-certbot create' to add a proxy.")
