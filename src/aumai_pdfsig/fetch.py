"""Fetch issuer or trusted certificates by URL.

Only certificate-looking URLs on public hosts are fetched, either directly
or through a relay that takes the target as its ``url`` query parameter.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from urllib.parse import urlsplit

import requests

from aumai_pdfsig.config import DEFAULT_SETTINGS, PdfSigSettings
from aumai_pdfsig.errors import CertificateFetchError

logger = logging.getLogger(__name__)

ALLOWED_PATTERNS = [
    re.compile(r"\.crt$", re.IGNORECASE),
    re.compile(r"\.cer$", re.IGNORECASE),
    re.compile(r"\.pem$", re.IGNORECASE),
    re.compile(r"/certs/", re.IGNORECASE),
    re.compile(r"/ocsp", re.IGNORECASE),
    re.compile(r"/crl", re.IGNORECASE),
    re.compile(r"caIssuers", re.IGNORECASE),
]

BLOCKED_HOSTS = {"localhost", "localhost.localdomain"}


def _ip_literal(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Parse *host* as an IP address, including shorthand IPv4 forms.

    Resolvers accept ``127.1``, ``2130706433`` and ``0x7f000001`` as IPv4
    literals, so they are normalised the same way before any check.
    """
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass
    try:
        return ipaddress.IPv4Address(socket.inet_aton(host))
    except (OSError, ValueError):
        return None


def _is_public_host(hostname: str) -> bool:
    host = hostname.lower().rstrip(".")
    if not host or host in BLOCKED_HOSTS or host.endswith(".localhost"):
        return False
    address = _ip_literal(host)
    if address is None:
        return True
    return not (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
    )


def is_valid_certificate_url(url: str) -> bool:
    """True for http(s) URLs on public hosts that look like certificate material."""
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not hostname:
        return False
    if not _is_public_host(hostname):
        return False
    return any(pattern.search(url) for pattern in ALLOWED_PATTERNS)


class CertificateFetcher:
    """Download certificate bytes over HTTP."""

    def __init__(
        self,
        settings: PdfSigSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or DEFAULT_SETTINGS
        self._session = session or requests.Session()

    def fetch(self, url: str) -> bytes:
        """Return the raw body served at *url*.

        Raises:
            CertificateFetchError: if the URL is refused, the upstream answers
                with an error status, or the request fails.
        """
        if not is_valid_certificate_url(url):
            raise CertificateFetchError(
                f"Invalid or disallowed certificate URL: {url}", status=403
            )

        headers = {"User-Agent": self._settings.fetch_user_agent}
        if self._settings.fetch_origin:
            headers["Origin"] = self._settings.fetch_origin
        if self._settings.relay_url:
            target, params = self._settings.relay_url, {"url": url}
        else:
            target, params = url, None

        logger.debug("Fetching certificate from %s", url)
        try:
            response = self._session.get(
                target,
                params=params,
                headers=headers,
                timeout=self._settings.fetch_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise CertificateFetchError(f"Certificate fetch failed: {exc}") from exc

        if not response.ok:
            raise CertificateFetchError(
                f"Failed to fetch certificate: {response.status_code} {response.reason}",
                status=response.status_code,
            )
        return response.content


__all__ = [
    "ALLOWED_PATTERNS",
    "CertificateFetcher",
    "is_valid_certificate_url",
]
