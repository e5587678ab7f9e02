"""
Certificate issuance package
"""
from .base import CertificateProvider, CertificateError
from .certbot import CertbotClient

__all__ = ["CertificateProvider", "CertificateError", "CertbotClient"]
