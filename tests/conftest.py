"""Shared test fixtures for aumai-pdfsig."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

import pytest
from asn1crypto import algos, cms, core
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.x509.oid import NameOID

CertFactory = Callable[..., x509.Certificate]
CmsFactory = Callable[..., bytes]
PdfFactory = Callable[..., bytes]

_BYTE_RANGE_PLACEHOLDER = b"0000000000 0000000000 0000000000 0000000000"

# ---------------------------------------------------------------------------
# Keys, generated once per session
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def ca_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def intermediate_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def signer_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_signer_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


def _make_certificate(
    common_name: str,
    key,
    *,
    issuer_cert: x509.Certificate | None = None,
    issuer_key=None,
    org: str | None = None,
    email: str | None = None,
    san_email: str | None = None,
    ca_issuers_url: str | None = None,
    serial: int | None = None,
    not_before: datetime | None = None,
    not_after: datetime | None = None,
    is_ca: bool = False,
) -> x509.Certificate:
    """Build a certificate for *key*; self-signed unless an issuer is given."""
    attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
    if org:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org))
    if email:
        attributes.append(x509.NameAttribute(NameOID.EMAIL_ADDRESS, email))
    subject = x509.Name(attributes)

    now = datetime.now(tz=UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_cert.subject if issuer_cert is not None else subject)
        .public_key(key.public_key())
        .serial_number(serial if serial is not None else x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
    )
    if san_email:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.RFC822Name(san_email)]), critical=False
        )
    if ca_issuers_url:
        builder = builder.add_extension(
            x509.AuthorityInformationAccess(
                [
                    x509.AccessDescription(
                        x509.oid.AuthorityInformationAccessOID.CA_ISSUERS,
                        x509.UniformResourceIdentifier(ca_issuers_url),
                    )
                ]
            ),
            critical=False,
        )
    return builder.sign(issuer_key or key, hashes.SHA256())


@pytest.fixture(scope="session")
def cert_factory() -> CertFactory:
    """The certificate builder, for tests that need unusual certificates."""
    return _make_certificate


@pytest.fixture(scope="session")
def ca_cert(ca_key: rsa.RSAPrivateKey) -> x509.Certificate:
    """Self-signed root CA."""
    return _make_certificate(
        "Test Root CA", ca_key, org="Test Trust Services", is_ca=True
    )


@pytest.fixture(scope="session")
def intermediate_cert(
    intermediate_key: rsa.RSAPrivateKey,
    ca_cert: x509.Certificate,
    ca_key: rsa.RSAPrivateKey,
) -> x509.Certificate:
    """Intermediate CA issued by the root."""
    return _make_certificate(
        "Test Issuing CA",
        intermediate_key,
        issuer_cert=ca_cert,
        issuer_key=ca_key,
        org="Test Trust Services",
        is_ca=True,
    )


@pytest.fixture(scope="session")
def signer_cert(
    signer_key: rsa.RSAPrivateKey,
    ca_cert: x509.Certificate,
    ca_key: rsa.RSAPrivateKey,
) -> x509.Certificate:
    """End-entity certificate issued directly by the root."""
    return _make_certificate(
        "Alice Signer",
        signer_key,
        issuer_cert=ca_cert,
        issuer_key=ca_key,
        org="Example Corp",
        email="alice@example.com",
    )


@pytest.fixture(scope="session")
def chained_signer_cert(
    signer_key: rsa.RSAPrivateKey,
    intermediate_cert: x509.Certificate,
    intermediate_key: rsa.RSAPrivateKey,
) -> x509.Certificate:
    """End-entity certificate issued by the intermediate."""
    return _make_certificate(
        "Carol Chained",
        signer_key,
        issuer_cert=intermediate_cert,
        issuer_key=intermediate_key,
        org="Example Corp",
    )


@pytest.fixture(scope="session")
def self_signed_cert(signer_key: rsa.RSAPrivateKey) -> x509.Certificate:
    return _make_certificate("Bob Self", signer_key)


# ---------------------------------------------------------------------------
# CMS signed-data
# ---------------------------------------------------------------------------


def _asn1_cert(cert: x509.Certificate) -> asn1_x509.Certificate:
    return asn1_x509.Certificate.load(cert.public_bytes(serialization.Encoding.DER))


def _attribute(attr_type: str, value) -> cms.CMSAttribute:
    return cms.CMSAttribute({"type": cms.CMSAttributeType(attr_type), "values": (value,)})


def _sign(key, data: bytes) -> bytes:
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return key.sign(data, ec.ECDSA(hashes.SHA256()))
    return key.sign(data, padding.PKCS1v15(), hashes.SHA256())


def _build_cms(
    certificates: Sequence[x509.Certificate],
    *,
    key,
    sid_cert: x509.Certificate | None = None,
    digest: str = "sha256",
    signing_time: datetime | None = None,
    with_signer_info: bool = True,
) -> bytes:
    """Encode a detached CMS signed-data structure.

    Certificates are embedded in the given order.  The signature value is
    real, but computed over an arbitrary message digest.
    """
    sid_source = sid_cert or certificates[0]
    asn1_sid = _asn1_cert(sid_source)
    digest_algorithm = algos.DigestAlgorithm({"algorithm": digest})

    for nonce in range(256):
        attrs = [
            _attribute("content_type", "data"),
            _attribute(
                "message_digest",
                hashlib.sha256(b"document-%d" % nonce).digest(),
            ),
        ]
        if signing_time is not None:
            attrs.append(
                _attribute(
                    "signing_time", cms.Time({"utc_time": core.UTCTime(signing_time)})
                )
            )
        signed_attrs = cms.CMSAttributes(attrs)
        signature = _sign(key, signed_attrs.dump())
        # A trailing zero byte would be eaten by the /Contents padding strip.
        if signature[-1] != 0:
            break

    signer_info = cms.SignerInfo(
        {
            "version": "v1",
            "sid": cms.SignerIdentifier(
                {
                    "issuer_and_serial_number": cms.IssuerAndSerialNumber(
                        {
                            "issuer": asn1_sid.issuer,
                            "serial_number": asn1_sid.serial_number,
                        }
                    )
                }
            ),
            "digest_algorithm": digest_algorithm,
            "signature_algorithm": algos.SignedDigestAlgorithm(
                {
                    "algorithm": "sha256_ecdsa"
                    if isinstance(key, ec.EllipticCurvePrivateKey)
                    else "rsassa_pkcs1v15"
                }
            ),
            "signed_attrs": signed_attrs,
            "signature": signature,
        }
    )

    signed_data = {
        "version": "v1",
        "digest_algorithms": cms.DigestAlgorithms((digest_algorithm,)),
        "encap_content_info": {"content_type": "data"},
        "signer_infos": [signer_info] if with_signer_info else [],
    }
    if certificates:
        signed_data["certificates"] = [
            cms.CertificateChoices(name="certificate", value=_asn1_cert(c))
            for c in certificates
        ]

    blob = cms.ContentInfo(
        {
            "content_type": cms.ContentType("signed_data"),
            "content": cms.SignedData(signed_data),
        }
    ).dump()
    return _restore_certificate_order(
        blob, [c.public_bytes(serialization.Encoding.DER) for c in certificates]
    )


def _restore_certificate_order(blob: bytes, ders: list[bytes]) -> bytes:
    """Rewrite the certificate SET in the order the caller gave.

    DER sorts SET OF members by encoding, which would put the shorter root
    ahead of the signer.  Signers emit the signer certificate first, so the
    members are written back in caller order; lengths are unchanged.
    """
    if len(ders) < 2:
        return blob
    starts = [blob.index(der) for der in ders]
    start = min(starts)
    end = max(s + len(der) for s, der in zip(starts, ders))
    assert end - start == sum(len(der) for der in ders)
    return blob[:start] + b"".join(ders) + blob[end:]


@pytest.fixture(scope="session")
def cms_factory() -> CmsFactory:
    return _build_cms


@pytest.fixture(scope="session")
def signed_cms(
    signer_cert: x509.Certificate,
    ca_cert: x509.Certificate,
    signer_key: rsa.RSAPrivateKey,
) -> bytes:
    """CMS blob: signer certificate first, then the root."""
    return _build_cms(
        [signer_cert, ca_cert],
        key=signer_key,
        signing_time=datetime(2024, 5, 17, 9, 30, tzinfo=UTC),
    )


# ---------------------------------------------------------------------------
# PDF documents
# ---------------------------------------------------------------------------


def _build_signed_pdf(
    payloads: Sequence[bytes],
    *,
    extra: Sequence[bytes] | None = None,
    reserved: int = 8192,
    trailing: bytes = b"",
) -> bytes:
    """Assemble a single-revision PDF with one signature object per payload.

    Each /ByteRange excludes that signature's /Contents hex string and runs
    to the end of the file as written; *trailing* is appended afterwards,
    outside every signed range.
    """
    extra = list(extra) if extra is not None else [b""] * len(payloads)

    out = bytearray(b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n")
    out += b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
    out += b"2 0 obj\n<< /Type /Pages /Kids [] /Count 0 >>\nendobj\n"

    holes: list[tuple[int, int, int]] = []
    for number, (payload, fields) in enumerate(zip(payloads, extra), start=3):
        hex_payload = payload.hex().upper().encode("ascii")
        assert len(hex_payload) <= reserved * 2
        out += b"%d 0 obj\n<< /Type /Sig /Filter /Adobe.PPKLite " % number
        out += b"/SubFilter /adbe.pkcs7.detached "
        if fields:
            out += fields + b" "
        placeholder_at = len(out) + len(b"/ByteRange [")
        out += b"/ByteRange [" + _BYTE_RANGE_PLACEHOLDER + b"] /Contents "
        hole_start = len(out)
        out += b"<" + hex_payload.ljust(reserved * 2, b"0") + b">"
        hole_end = len(out)
        out += b" >>\nendobj\n"
        holes.append((placeholder_at, hole_start, hole_end))

    out += b"trailer\n<< /Root 1 0 R >>\n%%EOF\n"

    total = len(out)
    for placeholder_at, hole_start, hole_end in holes:
        value = b"%010d %010d %010d %010d" % (0, hole_start, hole_end, total - hole_end)
        out[placeholder_at : placeholder_at + len(_BYTE_RANGE_PLACEHOLDER)] = value

    return bytes(out) + trailing


@pytest.fixture(scope="session")
def pdf_factory() -> PdfFactory:
    return _build_signed_pdf


@pytest.fixture()
def signed_pdf(signed_cms: bytes) -> bytes:
    """One signature with reason, location and signing date."""
    return _build_signed_pdf(
        [signed_cms],
        extra=[b"/Reason (Approved) /Location (Ghent) /M (D:20240517093000+02'00')"],
    )


@pytest.fixture()
def unsigned_pdf() -> bytes:
    return _build_signed_pdf([])
