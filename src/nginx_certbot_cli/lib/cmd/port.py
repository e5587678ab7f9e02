"""
Proxy target parsing for command-line input
"""
import re

DEFAULT_HOST = "127.0.0.1"
PROTOCOLS = ["http", "https"]


def validate_port(port: int) -> bool:
    """Validate port number is in valid range"""
    return 1 <= port <= 65535


def normalize_address(address: str) -> str:
    """
    Turn a bare port or host:port into host:port

    Raises:
        ValueError: If the address is empty, the port is not numeric or out of range
    """
    address = address.strip()
    if not address:
        raise ValueError("Target address cannot be empty")
    if re.fullmatch(r'\d+', address):
        address = f"{DEFAULT_HOST}:{address}"

    host, sep, port = address.rpartition(':')
    if not sep or not host or not re.fullmatch(r'\d+', port):
        raise ValueError(f"Invalid target address '{address}', expected host:port or a port")
    if not validate_port(int(port)):
        raise ValueError(f"Invalid port '{port}' (1-65535)")
    return address


def build_target(address: str, protocol: str = "http") -> str:
    """
    Build a proxy_pass target such as http://127.0.0.1:8080

    Raises:
        ValueError: If the protocol or address is invalid
    """
    if protocol not in PROTOCOLS:
        raise ValueError(f"Invalid protocol '{protocol}', expected http or https")
    return f"{protocol}://{normalize_address(address)}"
