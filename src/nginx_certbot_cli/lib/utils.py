"""
Utility functions for nginx-certbot-cli
"""
import logging
import re
import shutil
import socket
import subprocess
from typing import List, Optional, Sequence

import requests
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

IPV4_PATTERN = re.compile(r'^(?:\d{1,3}\.){3}\d{1,3}$')

# DNS record type for A records in DoH JSON answers
DNS_TYPE_A = 1


def run_command(cmd: Sequence[str], check: bool = False) -> subprocess.CompletedProcess:
    """
    Run an external command and capture its output

    Args:
        cmd: Command and arguments
        check: Raise CalledProcessError on a non-zero exit status

    Returns:
        CompletedProcess with text stdout/stderr
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            check=check
        )
    except FileNotFoundError as e:
        logger.debug(f"Command not found: {cmd[0]}")
        return subprocess.CompletedProcess(list(cmd), 127, "", str(e))
    logger.debug(f"Exit status {result.returncode}: {' '.join(cmd)}")
    return result


def command_output(result: subprocess.CompletedProcess) -> str:
    """Combine captured stdout and stderr of a finished command"""
    parts = [part.strip() for part in (result.stdout, result.stderr) if part and part.strip()]
    return "\n".join(parts)


def command_exists(name: str) -> bool:
    """Check whether an executable is on PATH"""
    return shutil.which(name) is not None


# Socket utility functions
def is_port_in_use(port: int, host: str = '0.0.0.0') -> bool:
    """Check if a port is already in use on the system"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            s.bind((host, port))
            return False
        except socket.error:
            return True


def get_port_usage(port: int) -> str:
    """Describe which processes listen on a port, using ss or netstat"""
    for tool in (["ss", "-tlpn"], ["netstat", "-tlpn"]):
        if not command_exists(tool[0]):
            continue
        result = run_command(tool)
        lines = [line for line in result.stdout.splitlines() if f":{port} " in line]
        return "\n".join(lines)
    return ""


def get_public_ip(services: List[str], timeout: float = 3.0) -> Optional[str]:
    """
    Get the public IPv4 address of the current machine

    Args:
        services: Ordered list of IP echo services, first valid answer wins
        timeout: Connect/response timeout per service

    Returns:
        The address, or None if every service failed
    """
    for service in services:
        try:
            response = requests.get(service, timeout=timeout)
            if response.status_code == 200:
                ip = response.text.strip()
                if IPV4_PATTERN.match(ip):
                    return ip
                logger.debug(f"{service} returned a non-IPv4 answer: {ip[:40]}")
        except RequestException as e:
            logger.debug(f"IP service {service} failed: {e}")
            continue
    return None


def resolve_domain(domain: str, services: List[str], timeout: float = 2.0) -> Optional[str]:
    """
    Resolve the first A record of a domain over DNS-over-HTTPS

    Args:
        domain: Domain to resolve
        services: Ordered list of DoH JSON endpoints
        timeout: Timeout per endpoint

    Returns:
        The first resolved address, or None
    """
    for service in services:
        try:
            response = requests.get(
                service,
                params={'name': domain, 'type': 'A'},
                headers={'Accept': 'application/dns-json'},
                timeout=timeout
            )
            response.raise_for_status()
            answers = response.json().get('Answer') or []
        except (RequestException, ValueError) as e:
            logger.debug(f"DoH lookup of {domain} via {service} failed: {e}")
            continue

        for answer in answers:
            if answer.get('type') == DNS_TYPE_A and answer.get('data'):
                return answer['data']
    return None
