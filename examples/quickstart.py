"""aumai-pdfsig quickstart: inspect the signatures of a PDF you already have.

    python examples/quickstart.py signed.pdf [trusted-ca.pem]

Each demo reads the same document and prints what it finds.
"""

from __future__ import annotations

import sys
from pathlib import Path

from aumai_pdfsig import (
    LocatedSignature,
    PdfSigSettings,
    PdfSignatureError,
    count_signatures,
    issuer_certificate_urls,
    load_certificate_file,
    scan_signatures,
    validate_pdf_signatures,
)
from aumai_pdfsig.validator import decode_signed_data, embedded_certificates


# ---------------------------------------------------------------------------
# Demo 1: count and list signature dictionaries
# ---------------------------------------------------------------------------

def demo_scan(pdf_bytes: bytes) -> None:
    """Show every /Type /Sig marker, including the ones that were skipped."""

    print("\n=== Demo 1: Scan ===")
    print(f"  Signatures found: {count_signatures(pdf_bytes)}")

    for outcome in scan_signatures(pdf_bytes):
        if isinstance(outcome, LocatedSignature):
            sig = outcome.signature
            print(
                f"  [{sig.index}] offset {outcome.offset}, ByteRange {list(sig.byte_range)}, "
                f"{len(sig.contents)} byte payload"
            )
        else:
            print(f"  [skipped] offset {outcome.offset}: {outcome.reason}")


# ---------------------------------------------------------------------------
# Demo 2: validate, optionally against a trusted certificate
# ---------------------------------------------------------------------------

def demo_validate(pdf_bytes: bytes, trusted_path: str | None) -> None:
    """Decode each signature and report signer, validity and coverage."""

    print("\n=== Demo 2: Validate ===")
    trusted = load_certificate_file(trusted_path) if trusted_path else None

    settings = PdfSigSettings(max_workers=2)
    for result in validate_pdf_signatures(pdf_bytes, trusted, settings=settings):
        if not result.is_valid:
            print(f"  #{result.signature_index}: unreadable ({result.error_message})")
            continue
        print(f"  #{result.signature_index}: {result.signer_name} <{result.signer_email or '-'}>")
        print(f"      issuer   : {result.issuer}")
        print(f"      validity : {result.valid_from:%Y-%m-%d} .. {result.valid_to:%Y-%m-%d}"
              + (" (expired)" if result.is_expired else ""))
        print(f"      coverage : {result.coverage_status.value}")
        if trusted is not None:
            print(f"      trusted  : {result.is_trusted}")


# ---------------------------------------------------------------------------
# Demo 3: where to fetch the issuer certificates from
# ---------------------------------------------------------------------------

def demo_issuer_urls(pdf_bytes: bytes) -> None:
    """Print the caIssuers URLs advertised by each embedded certificate."""

    print("\n=== Demo 3: Issuer certificate URLs ===")
    for outcome in scan_signatures(pdf_bytes):
        if not isinstance(outcome, LocatedSignature):
            continue
        try:
            certificates = embedded_certificates(
                decode_signed_data(outcome.signature.contents)
            )
        except PdfSignatureError as exc:
            print(f"  [{outcome.signature.index}] {exc}")
            continue
        for cert in certificates:
            subject = cert.subject.rfc4514_string()
            for url in issuer_certificate_urls(cert) or ["(none)"]:
                print(f"  [{outcome.signature.index}] {subject}: {url}")


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    pdf_bytes = Path(sys.argv[1]).read_bytes()
    trusted_path = sys.argv[2] if len(sys.argv) > 2 else None

    demo_scan(pdf_bytes)
    demo_validate(pdf_bytes, trusted_path)
    demo_issuer_urls(pdf_bytes)
    print("\nDone.")


if __name__ == "__main__":
    main()
