"""
Base class for certificate providers
"""
from abc import ABC, abstractmethod
from typing import List

class CertificateProvider(ABC):
    """Abstract base class for certificate issuance clients"""

    @abstractmethod
    def issue(self, domains: List[str], email: str, dry_run: bool = False) -> bool:
        """
        Obtain a certificate covering all domains, keyed by the first one

        Args:
            domains: Domain list, first is primary
            email: Contact email for the ACME account
            dry_run: Exercise validation against the staging server only

        Returns:
            True if successful

        Raises:
            CertificateError: If issuance fails
        """
        pass

    @abstractmethod
    def renew(self, primary_domain: str, dry_run: bool = False) -> bool:
        """
        Renew the certificate of one domain

        Args:
            primary_domain: Certificate name
            dry_run: Simulate the renewal only

        Returns:
            True if successful

        Raises:
            CertificateError: If renewal fails
        """
        pass

    @abstractmethod
    def delete(self, primary_domain: str) -> bool:
        """
        Delete the certificate of one domain

        Args:
            primary_domain: Certificate name

        Returns:
            True if successful

        Raises:
            CertificateError: If deletion fails
        """
        pass

    @abstractmethod
    def is_installed(self) -> bool:
        """Check whether the client is available on this host"""
        pass

    @abstractmethod
    def ensure_renewal_hooks(self, primary_domain: str) -> bool:
        """
        Make sure headless renewal stops and starts the web server

        Returns:
            True if the renewal record was changed
        """
        pass

class CertificateError(Exception):
    """Base exception for certificate operations"""

    def __init__(self, message: str, output: str = ""):
        self.message = message
        self.output = output
        super().__init__(message)
