"""
Proxy module initialization
"""
from .base import ReverseProxy, ProxyConfig, ProxyStatus, ProxyError
from .nginx import NginxProxy, NginxConfRenderer

__all__ = [
    "ReverseProxy",
    "ProxyConfig",
    "ProxyStatus",
    "ProxyError",
    "NginxProxy",
    "NginxConfRenderer"
]
