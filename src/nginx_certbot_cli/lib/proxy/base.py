"""
Base class for reverse proxy servers
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
from pathlib import Path

@dataclass
class ProxyConfig:
    """Proxy configuration data, keyed by its primary domain"""
    domains: List[str]
    target: str
    enabled: bool = True
    hsts: bool = False
    certificate: Optional[Path] = None
    config_file: Optional[Path] = None

    @property
    def primary_domain(self) -> str:
        return self.domains[0]

@dataclass
class ProxyStatus:
    """Result of applying configuration to the proxy server"""
    running: bool
    action: Optional[str] = None

class ReverseProxy(ABC):
    """Abstract base class for reverse proxy servers"""

    @abstractmethod
    def write_config(self, config: ProxyConfig, tls: bool = False) -> Path:
        """
        Render and write the configuration file for a proxy

        Args:
            config: ProxyConfig object
            tls: Render the certificate-backed variant

        Returns:
            Path of the written file
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        Validate the server's full configuration

        Returns:
            True if configuration is valid

        Raises:
            ProxyError: If validation fails, with the captured output
        """
        pass

    @abstractmethod
    def apply_config(self) -> ProxyStatus:
        """
        Reload the running server, or start it if stopped

        Returns:
            ProxyStatus object

        Raises:
            ProxyError: If the reload or start fails
        """
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """
        Check whether the server process is active

        Returns:
            True if running
        """
        pass

    @abstractmethod
    def activate(self, primary_domain: str) -> None:
        """Mark a configuration as served"""
        pass

    @abstractmethod
    def deactivate(self, primary_domain: str) -> None:
        """Mark a configuration as not served"""
        pass

class ProxyError(Exception):
    """Base exception for proxy operations"""

    def __init__(self, message: str, output: str = ""):
        self.message = message
        self.output = output
        super().__init__(message)
