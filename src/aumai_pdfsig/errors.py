"""Exception types raised inside aumai-pdfsig."""

from __future__ import annotations


class PdfSignatureError(Exception):
    """Base class for all aumai-pdfsig errors."""


class DecodeError(PdfSignatureError):
    """The signature payload is not a decodable CMS signed-data structure."""


class NoCertificateError(PdfSignatureError):
    """The signed-data structure embeds no X.509 certificate."""


class TrustEvaluationError(PdfSignatureError):
    """Comparing the signer chain with the trusted certificate failed."""


class TimestampRecoveryError(PdfSignatureError):
    """No usable signing time could be read from the signed attributes."""


class CertificateLoadError(PdfSignatureError):
    """Certificate bytes are neither PEM nor DER X.509."""


class CertificateFetchError(PdfSignatureError):
    """Fetching a certificate by URL failed.

    ``status`` mirrors the upstream HTTP status where there was one, and is
    403 for URLs refused by the allow-list and 500 for transport errors.
    """

    def __init__(self, message: str, status: int = 500) -> None:
        super().__init__(message)
        self.status = status


__all__ = [
    "CertificateFetchError",
    "CertificateLoadError",
    "DecodeError",
    "NoCertificateError",
    "PdfSignatureError",
    "TimestampRecoveryError",
    "TrustEvaluationError",
]
