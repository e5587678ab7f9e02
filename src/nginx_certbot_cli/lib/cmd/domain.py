"""
Domain and email validation for command-line input
"""
import re
from typing import List

# label(.label)+ where the final label is at least two letters
DOMAIN_PATTERN = re.compile(
    r'^(?=.{1,253}$)(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,63}$'
)

EMAIL_PATTERN = re.compile(r'^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$')


def validate_domain(domain: str) -> bool:
    """Validate that a domain is a syntactically valid hostname"""
    return bool(DOMAIN_PATTERN.match(domain))


def parse_domains(value: str) -> List[str]:
    """
    Split and validate a space-separated domain list

    Returns:
        Lower-cased domains without duplicates, first is primary

    Raises:
        ValueError: If the list is empty or a domain is invalid
    """
    domains = []
    for domain in value.split():
        if not validate_domain(domain):
            raise ValueError(f"Invalid domain '{domain}'")
        domain = domain.lower()
        if domain not in domains:
            domains.append(domain)
    if not domains:
        raise ValueError("Domain list cannot be empty")
    return domains


def validate_email(email: str) -> bool:
    """Validate an email address"""
    return bool(EMAIL_PATTERN.match(email))
