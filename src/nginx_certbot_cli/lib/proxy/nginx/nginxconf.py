"""
Nginx server block rendering and text edits for nginx-certbot-cli
"""
import logging
import re
from pathlib import Path
from string import Template
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

MARKER = "Auto-generated by nginx-certbot-cli"

HSTS_HEADER = "Strict-Transport-Security"

# First nginx release accepting the standalone "http2" directive
HTTP2_DIRECTIVE_VERSION = (1, 25, 1)

_PROXY_PASS_RE = re.compile(r'^(?P<indent>[ \t]*)proxy_pass\s+(?P<target>[^;]+);', re.MULTILINE)
_SERVER_NAME_RE = re.compile(r'^\s*server_name\s+([^;]+);', re.MULTILINE)
_CERT_KEY_RE = re.compile(r'^(?P<indent>[ \t]*)ssl_certificate_key\s+[^;]+;[^\n]*$', re.MULTILINE)
_CERT_RE = re.compile(r'^\s*ssl_certificate\s+([^;]+);', re.MULTILINE)


def session_cache_name(primary_domain: str) -> str:
    """Shared SSL session cache zone name, unique per site"""
    return "SSL_" + re.sub(r'[^A-Za-z0-9]', '_', primary_domain)


def has_marker(content: str) -> bool:
    return MARKER in content


def read_proxy_pass(content: str) -> Optional[str]:
    """Return the first proxy_pass target in the file"""
    match = _PROXY_PASS_RE.search(content)
    return match.group('target').strip() if match else None


def replace_proxy_pass(content: str, target: str) -> str:
    """Rewrite every proxy_pass directive to point at a new target"""
    new_content, count = _PROXY_PASS_RE.subn(
        lambda m: f"{m.group('indent')}proxy_pass {target};", content
    )
    if count == 0:
        raise ValueError("No proxy_pass directive found")
    return new_content


def has_hsts(content: str) -> bool:
    return HSTS_HEADER in content


def insert_hsts(content: str, max_age: int) -> str:
    """
    Add a Strict-Transport-Security header after each ssl_certificate_key line

    Raises:
        ValueError: If the configuration has no TLS block
    """
    def _add_header(match):
        line = match.group(0)
        return f'{line}\n{match.group("indent")}add_header {HSTS_HEADER} "max-age={max_age}" always;'

    new_content, count = _CERT_KEY_RE.subn(_add_header, content)
    if count == 0:
        raise ValueError("No ssl_certificate_key directive found, is the certificate installed?")
    return new_content


def parse_server_names(content: str) -> List[str]:
    """Return the domain list of the first server_name directive"""
    match = _SERVER_NAME_RE.search(content)
    return match.group(1).split() if match else []


def parse_certificate(content: str) -> Optional[Path]:
    match = _CERT_RE.search(content)
    return Path(match.group(1).strip()) if match else None


def parse_version(output: str) -> Optional[Tuple[int, ...]]:
    """Parse the output of 'nginx -v' into a version tuple"""
    match = re.search(r'nginx/(\d+(?:\.\d+)*)', output)
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split('.'))


class NginxConfRenderer:
    """Renders server blocks from the packaged templates"""

    def __init__(self, template_dir: Optional[Path] = None):
        template_dir = template_dir or Path(__file__).parent / "templates"
        self.http_template_path = template_dir / "http.conf"
        self.https_template_path = template_dir / "https.conf"

    def render_http(self, domains: List[str], target: str) -> str:
        """
        Render the HTTP-only server block used before a certificate exists

        Args:
            domains: Domain list, first is primary
            target: proxy_pass target

        Returns:
            Configuration text
        """
        template = Template(self.http_template_path.read_text())
        content = template.substitute(
            primary_domain=domains[0],
            marker=MARKER,
            server_names=" ".join(domains),
            target=target
        )
        logger.debug(f"Rendered HTTP server block for {domains[0]}")
        return content

    def render_https(
        self,
        domains: List[str],
        target: str,
        fullchain: Path,
        privkey: Path,
        nginx_version: Optional[Tuple[int, ...]] = None
    ) -> str:
        """
        Render the redirect block plus the TLS server block

        Args:
            domains: Domain list, first is primary
            target: proxy_pass target
            fullchain: Certificate chain path
            privkey: Private key path
            nginx_version: Installed nginx version, selects the HTTP/2 syntax

        Returns:
            Configuration text
        """
        if nginx_version is not None and nginx_version < HTTP2_DIRECTIVE_VERSION:
            listen = ["    listen 443 ssl http2;", "    listen [::]:443 ssl http2;"]
        else:
            listen = ["    listen 443 ssl;", "    listen [::]:443 ssl;", "    http2 on;"]

        template = Template(self.https_template_path.read_text())
        content = template.substitute(
            primary_domain=domains[0],
            marker=MARKER,
            server_names=" ".join(domains),
            target=target,
            listen_directives="\n".join(listen),
            fullchain=fullchain,
            privkey=privkey,
            session_cache=session_cache_name(domains[0])
        )
        logger.debug(f"Rendered HTTPS server blocks for {domains[0]}")
        return content
