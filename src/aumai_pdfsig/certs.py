"""Loading the caller's trusted certificate."""

from __future__ import annotations

from pathlib import Path

from cryptography import x509
from cryptography.x509.oid import AuthorityInformationAccessOID

from aumai_pdfsig.errors import CertificateLoadError

_PEM_MARKER = b"-----BEGIN"


def load_certificate(data: bytes) -> x509.Certificate:
    """Parse *data* as a PEM or DER encoded X.509 certificate.

    Raises:
        CertificateLoadError: if neither encoding parses.
    """
    try:
        if _PEM_MARKER in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise CertificateLoadError(f"Not a PEM or DER certificate: {exc}") from exc


def load_certificate_file(path: str) -> x509.Certificate:
    """Read and parse the certificate stored at *path*."""
    return load_certificate(Path(path).read_bytes())


def issuer_certificate_urls(cert: x509.Certificate) -> list[str]:
    """Return the caIssuers URLs from the Authority Information Access extension."""
    try:
        aia = cert.extensions.get_extension_for_class(x509.AuthorityInformationAccess)
    except x509.ExtensionNotFound:
        return []
    return [
        desc.access_location.value
        for desc in aia.value
        if desc.access_method == AuthorityInformationAccessOID.CA_ISSUERS
        and isinstance(desc.access_location, x509.UniformResourceIdentifier)
    ]


__all__ = [
    "issuer_certificate_urls",
    "load_certificate",
    "load_certificate_file",
]
