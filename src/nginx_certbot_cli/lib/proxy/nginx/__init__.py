"""
Nginx reverse proxy package
"""
from .nginx import NginxProxy
from .nginxconf import NginxConfRenderer, MARKER

__all__ = ["NginxProxy", "NginxConfRenderer", "MARKER"]
