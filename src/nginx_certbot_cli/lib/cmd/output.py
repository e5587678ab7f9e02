"""
Console reporting shared by the commands
"""
from typing import Union

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from ..cert.base import CertificateError
from ..proxy.base import ProxyError

console = Console()


def report_error(error: Union[ProxyError, CertificateError], out: Console = console) -> None:
    """Print an operation failure with the external tool's captured output"""
    out.print(f"[bold red]Error: {escape(error.message)}")
    if error.output:
        out.print(Panel(escape(error.output), title="Captured output", border_style="red"))
