"""
nginx-certbot-cli: nginx reverse proxies with Let's Encrypt certificates
"""

__version__ = "0.1.0"
