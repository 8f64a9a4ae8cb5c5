"""Batch validation of every signature in a PDF document."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from cryptography import x509

from aumai_pdfsig.config import DEFAULT_SETTINGS, PdfSigSettings
from aumai_pdfsig.locator import RegexSignatureLocator, SignatureLocator
from aumai_pdfsig.models import (
    ExtractedSignature,
    LocatedSignature,
    ScanOutcome,
    SignatureValidationResult,
)
from aumai_pdfsig.validator import validate_signature

logger = logging.getLogger(__name__)


def scan_signatures(
    pdf_bytes: bytes,
    *,
    settings: PdfSigSettings | None = None,
    locator: SignatureLocator | None = None,
) -> list[ScanOutcome]:
    """Return the located and skipped signature markers of *pdf_bytes*."""
    locator = locator or RegexSignatureLocator(settings)
    return locator.scan(pdf_bytes)


def _located(outcomes: list[ScanOutcome]) -> list[ExtractedSignature]:
    return [o.signature for o in outcomes if isinstance(o, LocatedSignature)]


def validate_pdf_signatures(
    pdf_bytes: bytes,
    trusted_cert: x509.Certificate | None = None,
    *,
    settings: PdfSigSettings | None = None,
    locator: SignatureLocator | None = None,
    max_workers: int | None = None,
) -> list[SignatureValidationResult]:
    """Locate and validate every signature in *pdf_bytes*.

    Exactly one result is returned per located signature, ordered by
    ``signature_index``.  With more than one worker the signatures are
    validated on a thread pool.
    """
    settings = settings or DEFAULT_SETTINGS
    signatures = _located(
        scan_signatures(pdf_bytes, settings=settings, locator=locator)
    )
    workers = max_workers if max_workers is not None else settings.max_workers

    if workers <= 1 or len(signatures) <= 1:
        return [validate_signature(sig, pdf_bytes, trusted_cert) for sig in signatures]

    logger.debug("Validating %d signatures on %d threads", len(signatures), workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(validate_signature, sig, pdf_bytes, trusted_cert)
            for sig in signatures
        ]
        results = [f.result() for f in futures]
    return sorted(results, key=lambda r: r.signature_index)


def count_signatures(
    pdf_bytes: bytes,
    *,
    settings: PdfSigSettings | None = None,
    locator: SignatureLocator | None = None,
) -> int:
    """Number of well-formed signature dictionaries, without validating them."""
    return len(
        _located(scan_signatures(pdf_bytes, settings=settings, locator=locator))
    )


__all__ = [
    "count_signatures",
    "scan_signatures",
    "validate_pdf_signatures",
]
