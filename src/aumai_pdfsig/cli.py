"""CLI entry point for aumai-pdfsig."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from cryptography import x509

from aumai_pdfsig.certs import load_certificate, load_certificate_file
from aumai_pdfsig.config import PdfSigSettings
from aumai_pdfsig.core import count_signatures, scan_signatures, validate_pdf_signatures
from aumai_pdfsig.errors import PdfSignatureError
from aumai_pdfsig.fetch import CertificateFetcher
from aumai_pdfsig.models import LocatedSignature, SignatureValidationResult

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_pdf(path: str) -> bytes:
    return Path(path).read_bytes()


def _load_trusted(
    settings: PdfSigSettings, path: str | None, url: str | None
) -> x509.Certificate | None:
    if path:
        return load_certificate_file(path)
    if url:
        return load_certificate(CertificateFetcher(settings).fetch(url))
    return None


def _echo_result(result: SignatureValidationResult) -> None:
    click.echo(f"Signature #{result.signature_index}")
    if not result.is_valid:
        click.echo(f"  Structure : UNREADABLE: {result.error_message}")
        return
    click.echo("  Structure : OK (signature value not verified)")
    click.echo(f"  Signer    : {result.signer_name}")
    if result.signer_org:
        click.echo(f"  Org       : {result.signer_org}")
    if result.signer_email:
        click.echo(f"  Email     : {result.signer_email}")
    click.echo(f"  Issuer    : {result.issuer}")
    click.echo(f"  Serial    : {result.serial_number}")
    click.echo(
        f"  Validity  : {result.valid_from.isoformat()} .. {result.valid_to.isoformat()}"
        + ("  [EXPIRED]" if result.is_expired else "")
    )
    if result.signature_date is not None:
        click.echo(f"  Signed at : {result.signature_date.isoformat()}")
    click.echo(
        f"  Algorithms: {result.algorithms.digest} / {result.algorithms.signature}"
    )
    click.echo(f"  Self-signed: {'yes' if result.is_self_signed else 'no'}")
    click.echo(f"  Trusted   : {'yes' if result.is_trusted else 'no'}")
    click.echo(f"  Coverage  : {result.coverage_status.value}")
    if result.reason:
        click.echo(f"  Reason    : {result.reason}")
    if result.location:
        click.echo(f"  Location  : {result.location}")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option()
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """AumAI PDFSig: inspect the digital signatures embedded in PDF files."""
    try:
        settings = PdfSigSettings.from_env()
    except ValueError as exc:
        click.echo(f"Error: invalid PDFSIG_* settings: {exc}", err=True)
        sys.exit(1)
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    ctx.obj = settings


@main.command("verify")
@click.option("--pdf", "pdf_path", required=True, metavar="PATH", help="PDF file.")
@click.option(
    "--trusted-cert",
    default=None,
    metavar="PATH",
    help="PEM or DER certificate to assess trust against.",
)
@click.option(
    "--trusted-cert-url",
    default=None,
    metavar="URL",
    help="Fetch the trusted certificate from a certificate URL instead.",
)
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Threads.")
@click.option("--json-output", is_flag=True, help="Emit raw JSON.")
@click.pass_obj
def verify_command(
    settings: PdfSigSettings,
    pdf_path: str,
    trusted_cert: str | None,
    trusted_cert_url: str | None,
    workers: int | None,
    json_output: bool,
) -> None:
    """Validate every signature in a PDF file."""
    if trusted_cert and trusted_cert_url:
        click.echo(
            "Error: --trusted-cert and --trusted-cert-url are mutually exclusive",
            err=True,
        )
        sys.exit(1)

    try:
        pdf_bytes = _read_pdf(pdf_path)
        trusted = _load_trusted(settings, trusted_cert, trusted_cert_url)
    except (OSError, PdfSignatureError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    results = validate_pdf_signatures(
        pdf_bytes, trusted, settings=settings, max_workers=workers
    )

    if json_output:
        click.echo(
            json.dumps([r.model_dump(mode="json") for r in results], indent=2)
        )
    elif not results:
        click.echo("No signatures found.")
    else:
        for result in results:
            _echo_result(result)

    if not results or not all(r.is_valid for r in results):
        sys.exit(2)


@main.command("count")
@click.option("--pdf", "pdf_path", required=True, metavar="PATH", help="PDF file.")
@click.pass_obj
def count_command(settings: PdfSigSettings, pdf_path: str) -> None:
    """Print the number of signatures without validating them."""
    try:
        pdf_bytes = _read_pdf(pdf_path)
    except OSError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(str(count_signatures(pdf_bytes, settings=settings)))


@main.command("extract")
@click.option("--pdf", "pdf_path", required=True, metavar="PATH", help="PDF file.")
@click.option("--json-output", is_flag=True, help="Emit raw JSON.")
@click.pass_obj
def extract_command(settings: PdfSigSettings, pdf_path: str, json_output: bool) -> None:
    """List the signature dictionaries found, including skipped ones."""
    try:
        pdf_bytes = _read_pdf(pdf_path)
    except OSError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    outcomes = scan_signatures(pdf_bytes, settings=settings)

    if json_output:
        payload = []
        for outcome in outcomes:
            entry = outcome.model_dump(mode="json", exclude={"signature": {"contents"}})
            if isinstance(outcome, LocatedSignature):
                entry["signature"]["contents_size"] = len(outcome.signature.contents)
            payload.append(entry)
        click.echo(json.dumps(payload, indent=2))
        return

    for outcome in outcomes:
        if isinstance(outcome, LocatedSignature):
            sig = outcome.signature
            click.echo(
                f"[{sig.index}] offset {outcome.offset}  "
                f"ByteRange {list(sig.byte_range)}  payload {len(sig.contents):,} bytes"
            )
            for label, value in (
                ("Name", sig.name),
                ("Reason", sig.reason),
                ("Location", sig.location),
                ("Contact", sig.contact_info),
                ("Time", sig.signing_time),
            ):
                if value:
                    click.echo(f"    {label:<9}: {value}")
        else:
            click.echo(f"[skipped] offset {outcome.offset}: {outcome.reason}")


if __name__ == "__main__":
    main()
