"""Decode a located signature and assess its signer certificate."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from asn1crypto import cms, core
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.x509.oid import NameOID

from aumai_pdfsig.errors import (
    DecodeError,
    NoCertificateError,
    PdfSignatureError,
    TimestampRecoveryError,
    TrustEvaluationError,
)
from aumai_pdfsig.models import (
    UNKNOWN,
    AlgorithmInfo,
    CoverageStatus,
    ExtractedSignature,
    SignatureValidationResult,
)

logger = logging.getLogger(__name__)

DIGEST_ALGORITHMS: dict[str, str] = {
    "1.2.840.113549.2.5": "MD5",
    "1.3.14.3.2.26": "SHA-1",
    "2.16.840.1.101.3.4.2.1": "SHA-256",
    "2.16.840.1.101.3.4.2.2": "SHA-384",
    "2.16.840.1.101.3.4.2.3": "SHA-512",
    "2.16.840.1.101.3.4.2.4": "SHA-224",
}

SIGNATURE_ALGORITHMS: dict[str, str] = {
    "1.2.840.113549.1.1.1": "RSA",
    "1.2.840.113549.1.1.5": "RSA with SHA-1",
    "1.2.840.113549.1.1.11": "RSA with SHA-256",
    "1.2.840.113549.1.1.12": "RSA with SHA-384",
    "1.2.840.113549.1.1.13": "RSA with SHA-512",
    "1.2.840.10045.2.1": "ECDSA",
    "1.2.840.10045.4.1": "ECDSA with SHA-1",
    "1.2.840.10045.4.3.2": "ECDSA with SHA-256",
    "1.2.840.10045.4.3.3": "ECDSA with SHA-384",
    "1.2.840.10045.4.3.4": "ECDSA with SHA-512",
}


def digest_algorithm_name(oid: str | None) -> str:
    """Map a digest OID to its name; unknown OIDs are returned as-is."""
    return DIGEST_ALGORITHMS.get(oid or "", oid or UNKNOWN)


def signature_algorithm_name(oid: str | None) -> str:
    """Map a signature OID to its name; unknown OIDs are returned as-is."""
    return SIGNATURE_ALGORITHMS.get(oid or "", oid or UNKNOWN)


# ---------------------------------------------------------------------------
# CMS decoding
# ---------------------------------------------------------------------------


def decode_signed_data(contents: bytes) -> cms.SignedData:
    """Load *contents* as a CMS ``ContentInfo`` wrapping ``SignedData``.

    Raises:
        DecodeError: if the bytes are not DER signed-data.
    """
    try:
        content_info = cms.ContentInfo.load(contents)
        content_type = content_info["content_type"].native
        if content_type != "signed_data":
            raise DecodeError(f"Unexpected CMS content type: {content_type}")
        signed_data = content_info["content"]
        # asn1crypto parses lazily; touch the fields used later so that
        # structural errors surface here.
        signed_data["certificates"]
        signed_data["signer_infos"]
    except DecodeError:
        raise
    except Exception as exc:
        raise DecodeError(f"Failed to parse signature: {exc}") from exc
    return signed_data


def embedded_certificates(signed_data: cms.SignedData) -> list[x509.Certificate]:
    """Return the X.509 certificates carried by *signed_data*, in order.

    Raises:
        NoCertificateError: if there are none.
        DecodeError: if one of them cannot be parsed.
    """
    certificate_set = signed_data["certificates"]
    if isinstance(certificate_set, core.Void):
        choices: list[Any] = []
    else:
        choices = list(certificate_set)

    certificates: list[x509.Certificate] = []
    for choice in choices:
        if choice.name != "certificate":
            continue
        try:
            certificates.append(x509.load_der_x509_certificate(choice.chosen.dump()))
        except ValueError as exc:
            raise DecodeError(f"Invalid embedded certificate: {exc}") from exc

    if not certificates:
        raise NoCertificateError("No certificates found in signature")
    return certificates


def _first_signer_info(signed_data: cms.SignedData) -> cms.SignerInfo | None:
    signer_infos = signed_data["signer_infos"]
    if isinstance(signer_infos, core.Void) or len(signer_infos) == 0:
        return None
    return signer_infos[0]


# ---------------------------------------------------------------------------
# Certificate facts
# ---------------------------------------------------------------------------


def _name_attribute(name: x509.Name, oid: x509.ObjectIdentifier) -> str | None:
    attributes = name.get_attributes_for_oid(oid)
    if not attributes:
        return None
    value = attributes[0].value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _signer_email(cert: x509.Certificate) -> str | None:
    email = _name_attribute(cert.subject, NameOID.EMAIL_ADDRESS)
    if email is not None:
        return email
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return None
    emails = san.value.get_values_for_type(x509.RFC822Name)
    return emails[0] if emails else None


def format_serial(serial: int) -> str:
    """Lowercase hex of the DER INTEGER content octets.

    A serial with its top bit set keeps the leading ``00`` octet that DER
    adds to keep it positive.
    """
    return serial.to_bytes(serial.bit_length() // 8 + 1, "big", signed=True).hex()


def is_self_signed(cert: x509.Certificate) -> bool:
    """True when the certificate names itself as its issuer."""
    return cert.issuer == cert.subject


def issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    """True when *issuer* directly issued *cert*.

    The names must chain and the certificate signature must verify under the
    issuer's public key.  Key types ``cryptography`` cannot verify with raise
    ``TypeError``.
    """
    if cert.issuer != issuer.subject:
        return False
    try:
        cert.verify_directly_issued_by(issuer)
    except (InvalidSignature, ValueError):
        return False
    return True


def evaluate_trust(
    signer_cert: x509.Certificate,
    chain: list[x509.Certificate],
    trusted_cert: x509.Certificate,
) -> bool:
    """Compare the signer and its embedded chain with *trusted_cert*.

    Raises:
        TrustEvaluationError: on any failure while comparing.
    """
    try:
        if issued_by(signer_cert, trusted_cert):
            return True
        if signer_cert.serial_number == trusted_cert.serial_number:
            return True
        for cert in chain:
            if (
                issued_by(cert, trusted_cert)
                or cert.serial_number == trusted_cert.serial_number
            ):
                return True
    except Exception as exc:
        raise TrustEvaluationError(str(exc)) from exc
    return False


# ---------------------------------------------------------------------------
# Signing time
# ---------------------------------------------------------------------------


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def signing_time_attribute(signer_info: cms.SignerInfo | None) -> datetime | None:
    """Read the ``signing_time`` signed attribute, if present.

    Raises:
        TimestampRecoveryError: if the attribute exists but cannot be read.
    """
    if signer_info is None:
        return None
    try:
        signed_attrs = signer_info["signed_attrs"]
        if isinstance(signed_attrs, core.Void):
            return None
        for attr in signed_attrs:
            if attr["type"].native == "signing_time":
                return _as_utc(attr["values"][0].native)
    except Exception as exc:
        raise TimestampRecoveryError(str(exc)) from exc
    return None


def _signature_date(
    signature: ExtractedSignature, signer_info: cms.SignerInfo | None
) -> datetime | None:
    if signature.signing_time:
        try:
            return _as_utc(datetime.fromisoformat(signature.signing_time))
        except ValueError:
            logger.debug(
                "Ignoring unparsable /M date %r on signature %d",
                signature.signing_time,
                signature.index,
            )
    try:
        return signing_time_attribute(signer_info)
    except TimestampRecoveryError as exc:
        logger.debug("No signing time for signature %d: %s", signature.index, exc)
        return None


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------


def coverage_status(byte_range: tuple[int, ...], document_length: int) -> CoverageStatus:
    """Classify how far the second signed span reaches into the document."""
    if len(byte_range) != 4:
        return CoverageStatus.unknown
    expected_end = byte_range[2] + byte_range[3]
    if expected_end == document_length:
        return CoverageStatus.full
    if expected_end < document_length:
        return CoverageStatus.partial
    return CoverageStatus.unknown


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def validate_signature(
    signature: ExtractedSignature,
    pdf_bytes: bytes,
    trusted_cert: x509.Certificate | None = None,
    *,
    now: datetime | None = None,
) -> SignatureValidationResult:
    """Decode *signature* and describe its signer certificate.

    Never raises.  Decoding problems are reported through ``error_message``
    with ``is_valid=False``; every other field then keeps its default.

    Args:
        signature: A record produced by the locator.
        pdf_bytes: The complete document the signature was found in.
        trusted_cert: Optional certificate to assess trust against.
        now: Evaluation time for the expiry check (default: current UTC time).
    """
    base: dict[str, Any] = {
        "signature_index": signature.index,
        "byte_range": signature.byte_range,
        "reason": signature.reason,
        "location": signature.location,
        "contact_info": signature.contact_info,
    }

    try:
        return _validate(signature, pdf_bytes, trusted_cert, now, base)
    except PdfSignatureError as exc:
        logger.info("Signature %d could not be decoded: %s", signature.index, exc)
        return SignatureValidationResult(**base, error_message=str(exc))
    except Exception as exc:
        logger.info("Signature %d could not be decoded: %s", signature.index, exc)
        return SignatureValidationResult(
            **base, error_message=str(exc) or "Failed to parse signature"
        )


def _validate(
    signature: ExtractedSignature,
    pdf_bytes: bytes,
    trusted_cert: x509.Certificate | None,
    now: datetime | None,
    base: dict[str, Any],
) -> SignatureValidationResult:
    signed_data = decode_signed_data(signature.contents)
    certificates = embedded_certificates(signed_data)
    signer_cert = certificates[0]
    signer_info = _first_signer_info(signed_data)

    valid_from = signer_cert.not_valid_before_utc
    valid_to = signer_cert.not_valid_after_utc
    now = _as_utc(now) if now is not None else datetime.now(tz=UTC)

    trusted = False
    if trusted_cert is not None:
        try:
            trusted = evaluate_trust(signer_cert, certificates, trusted_cert)
        except TrustEvaluationError as exc:
            logger.debug("Trust check failed for signature %d: %s", signature.index, exc)

    digest_oid = signer_info["digest_algorithm"]["algorithm"].dotted if signer_info else None

    return SignatureValidationResult(
        **base,
        is_valid=True,
        signer_name=_name_attribute(signer_cert.subject, NameOID.COMMON_NAME) or UNKNOWN,
        signer_org=_name_attribute(signer_cert.subject, NameOID.ORGANIZATION_NAME),
        signer_email=_signer_email(signer_cert),
        issuer=_name_attribute(signer_cert.issuer, NameOID.COMMON_NAME) or UNKNOWN,
        issuer_org=_name_attribute(signer_cert.issuer, NameOID.ORGANIZATION_NAME),
        valid_from=valid_from,
        valid_to=valid_to,
        is_expired=now < valid_from or now > valid_to,
        is_self_signed=is_self_signed(signer_cert),
        is_trusted=trusted,
        algorithms=AlgorithmInfo(
            digest=digest_algorithm_name(digest_oid),
            signature=signature_algorithm_name(
                signer_cert.signature_algorithm_oid.dotted_string
            ),
        ),
        serial_number=format_serial(signer_cert.serial_number),
        signature_date=_signature_date(signature, signer_info),
        coverage_status=coverage_status(signature.byte_range, len(pdf_bytes)),
    )


__all__ = [
    "DIGEST_ALGORITHMS",
    "SIGNATURE_ALGORITHMS",
    "coverage_status",
    "decode_signed_data",
    "digest_algorithm_name",
    "embedded_certificates",
    "evaluate_trust",
    "format_serial",
    "is_self_signed",
    "issued_by",
    "signature_algorithm_name",
    "signing_time_attribute",
    "validate_signature",
]
