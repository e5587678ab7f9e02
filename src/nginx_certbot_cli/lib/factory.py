"""
Factory classes for provider instantiation
"""
from typing import Type, Dict, Optional

from .config import Config
from .cert.base import CertificateProvider
from .cert.certbot import CertbotClient
from .manager import ProxyManager
from .proxy.base import ReverseProxy
from .proxy.nginx import NginxProxy

class ProviderFactory:
    """Base factory class for providers"""

    @classmethod
    def get_providers(cls) -> Dict[str, Type]:
        """Get available providers"""
        raise NotImplementedError

    @classmethod
    def _lookup(cls, provider_type: str) -> Type:
        if provider_type not in cls.get_providers():
            raise ValueError(f"Unsupported provider: {provider_type}")
        return cls.get_providers()[provider_type]

class ProxyProviderFactory(ProviderFactory):
    """Factory for reverse proxy providers"""

    _providers = {
        'nginx': NginxProxy
    }

    @classmethod
    def create(cls, config: Config, provider_type: str = 'nginx') -> ReverseProxy:
        """
        Create proxy provider instance

        Raises:
            ValueError: If provider type is not supported
        """
        return cls._lookup(provider_type)(config)

    @classmethod
    def get_providers(cls) -> Dict[str, Type[ReverseProxy]]:
        return cls._providers

class CertificateProviderFactory(ProviderFactory):
    """Factory for certificate providers"""

    _providers = {
        'certbot': CertbotClient
    }

    @classmethod
    def create(cls, config: Config, proxy: ReverseProxy, provider_type: str = 'certbot') -> CertificateProvider:
        """
        Create certificate provider instance bound to a proxy

        Raises:
            ValueError: If provider type is not supported
        """
        return cls._lookup(provider_type)(config, proxy)

    @classmethod
    def get_providers(cls) -> Dict[str, Type[CertificateProvider]]:
        return cls._providers

def create_manager(config: Config, proxy: Optional[ReverseProxy] = None) -> ProxyManager:
    """Wire a ProxyManager from the configured providers"""
    proxy = proxy or ProxyProviderFactory.create(config)
    certs = CertificateProviderFactory.create(config, proxy)
    return ProxyManager(config, proxy, certs)
