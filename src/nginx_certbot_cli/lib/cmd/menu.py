"""
Interactive main menu
"""
import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from ..config import Config
from ..manager import ProxyManager
from .create import create_command
from .manage import manage_menu
from .output import console

logger = logging.getLogger(__name__)


def menu_command(config: Config, manager: ProxyManager, out: Optional[Console] = None):
    """Loop over create / manage / exit until the user leaves"""
    out = out or console
    while True:
        out.print(Panel.fit(
            "1) Create a new reverse proxy and certificate\n"
            "2) Manage existing configurations\n"
            "3) Exit",
            title="nginx-certbot-cli",
            border_style="blue"
        ))
        choice = Prompt.ask("Select an option", choices=["1", "2", "3"], default="3")
        logger.debug(f"Main menu choice: {choice}")

        if choice == "1":
            create_command(config, manager, out)
        elif choice == "2":
            manage_menu(manager, config, out)
        else:
            out.print("Bye")
            return
