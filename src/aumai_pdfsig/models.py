"""Pydantic models for aumai-pdfsig."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

UNKNOWN = "Unknown"


class CoverageStatus(str, Enum):
    """How much of the document the signed byte ranges reach."""

    full = "full"
    partial = "partial"
    unknown = "unknown"


class ExtractedSignature(BaseModel):
    """One raw signature dictionary recovered from the document bytes."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    contents: bytes
    byte_range: tuple[int, int, int, int]
    reason: str | None = None
    location: str | None = None
    contact_info: str | None = None
    name: str | None = None
    signing_time: str | None = None  # ISO-8601, from the /M entry
    offset: int = Field(default=0, ge=0)


class AlgorithmInfo(BaseModel):
    """Human-readable digest and signature algorithm names."""

    model_config = ConfigDict(frozen=True)

    digest: str = UNKNOWN
    signature: str = UNKNOWN


class SignatureValidationResult(BaseModel):
    """Verdict for a single signature.

    ``is_valid`` only asserts that the signature container could be decoded.
    The signature value is not checked against the signed byte ranges.
    """

    model_config = ConfigDict(frozen=True)

    signature_index: int = Field(ge=0)
    is_valid: bool = False
    signer_name: str = UNKNOWN
    signer_org: str | None = None
    signer_email: str | None = None
    issuer: str = UNKNOWN
    issuer_org: str | None = None
    signature_date: datetime | None = None
    valid_from: datetime = EPOCH
    valid_to: datetime = EPOCH
    is_expired: bool = False
    is_self_signed: bool = False
    is_trusted: bool = False
    algorithms: AlgorithmInfo = Field(default_factory=AlgorithmInfo)
    serial_number: str = ""
    reason: str | None = None
    location: str | None = None
    contact_info: str | None = None
    byte_range: tuple[int, int, int, int] | None = None
    coverage_status: CoverageStatus = CoverageStatus.unknown
    error_message: str | None = None


class LocatedSignature(BaseModel):
    """A signature marker that produced a complete record."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["located"] = "located"
    offset: int
    signature: ExtractedSignature


class SkippedSignature(BaseModel):
    """A signature marker that was dropped, and why."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["skipped"] = "skipped"
    offset: int
    reason: str


ScanOutcome = Annotated[
    LocatedSignature | SkippedSignature, Field(discriminator="kind")
]


__all__ = [
    "EPOCH",
    "UNKNOWN",
    "AlgorithmInfo",
    "CoverageStatus",
    "ExtractedSignature",
    "LocatedSignature",
    "ScanOutcome",
    "SignatureValidationResult",
    "SkippedSignature",
]
