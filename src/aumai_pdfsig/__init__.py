"""aumai-pdfsig: Locate and inspect the digital signatures embedded in PDF files."""

from aumai_pdfsig.certs import (
    issuer_certificate_urls,
    load_certificate,
    load_certificate_file,
)
from aumai_pdfsig.config import PdfSigSettings
from aumai_pdfsig.core import count_signatures, scan_signatures, validate_pdf_signatures
from aumai_pdfsig.errors import (
    CertificateFetchError,
    CertificateLoadError,
    DecodeError,
    NoCertificateError,
    PdfSignatureError,
    TimestampRecoveryError,
    TrustEvaluationError,
)
from aumai_pdfsig.fetch import CertificateFetcher, is_valid_certificate_url
from aumai_pdfsig.locator import RegexSignatureLocator, SignatureLocator, extract_signatures
from aumai_pdfsig.models import (
    AlgorithmInfo,
    CoverageStatus,
    ExtractedSignature,
    LocatedSignature,
    ScanOutcome,
    SignatureValidationResult,
    SkippedSignature,
)
from aumai_pdfsig.validator import validate_signature

__version__ = "0.1.0"

__all__ = [
    "AlgorithmInfo",
    "CertificateFetchError",
    "CertificateFetcher",
    "CertificateLoadError",
    "CoverageStatus",
    "DecodeError",
    "ExtractedSignature",
    "LocatedSignature",
    "NoCertificateError",
    "PdfSigSettings",
    "PdfSignatureError",
    "RegexSignatureLocator",
    "ScanOutcome",
    "SignatureLocator",
    "SignatureValidationResult",
    "SkippedSignature",
    "TimestampRecoveryError",
    "TrustEvaluationError",
    "count_signatures",
    "extract_signatures",
    "is_valid_certificate_url",
    "issuer_certificate_urls",
    "load_certificate",
    "load_certificate_file",
    "scan_signatures",
    "validate_pdf_signatures",
    "validate_signature",
]
