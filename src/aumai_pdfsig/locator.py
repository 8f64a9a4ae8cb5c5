"""Locate signature dictionaries in raw PDF bytes.

The scan is a tolerant pattern search rather than a full object parser. All
offsets are raw byte offsets, since /ByteRange values are expressed in the
same space, so the document is never decoded to text.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Protocol

from aumai_pdfsig.config import DEFAULT_SETTINGS, PdfSigSettings
from aumai_pdfsig.models import (
    ExtractedSignature,
    LocatedSignature,
    ScanOutcome,
    SkippedSignature,
)

logger = logging.getLogger(__name__)

SIG_MARKER = re.compile(rb"/Type\s*/Sig\b")
_OBJ_HEADER = re.compile(rb"\d+\s+\d+\s+obj\b")
_ENDOBJ = b"endobj"
_BYTE_RANGE = re.compile(rb"/ByteRange\s*\[\s*(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s*\]")
_CONTENTS = re.compile(rb"/Contents\s*<([0-9A-Fa-f\s]+)>")
_PDF_DATE = re.compile(
    rb"^(?:D:)?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?"
    rb"([Zz]|[+-]\d{2}(?:'?\d{2})?'?)?"
)

_TEXT_FIELDS = {
    "reason": b"Reason",
    "location": b"Location",
    "contact_info": b"ContactInfo",
    "name": b"Name",
}

_ESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}


# ---------------------------------------------------------------------------
# Field decoding helpers
# ---------------------------------------------------------------------------


def strip_trailing_zeros(data: bytes) -> bytes:
    """Drop the null padding that fills the reserved /Contents space."""
    return data.rstrip(b"\x00")


def decode_hex_contents(hex_digits: bytes) -> bytes:
    """Decode a /Contents hex string into the CMS payload bytes.

    Whitespace is ignored and an odd final digit is read as if followed by
    ``0``.  Trailing zero bytes are stripped, because DER decoders reject the
    padding left behind after the signature was written.
    """
    digits = re.sub(rb"\s+", b"", hex_digits)
    if len(digits) % 2:
        digits += b"0"
    return strip_trailing_zeros(bytes.fromhex(digits.decode("ascii")))


def read_literal_string(data: bytes, pos: int) -> bytes | None:
    """Read the PDF literal string whose body starts at *pos*.

    *pos* is the index just past the opening parenthesis.  Escape sequences
    are resolved and balanced inner parentheses are kept.  Returns ``None``
    if the string is not closed before the end of *data*.
    """
    out = bytearray()
    depth = 1
    i = pos
    n = len(data)
    while i < n:
        c = data[i]
        if c == 0x5C:
            i += 1
            if i >= n:
                break
            e = data[i]
            if e in _ESCAPES:
                out += _ESCAPES[e]
                i += 1
            elif 0x30 <= e <= 0x37:
                j = i
                while j < n and j < i + 3 and 0x30 <= data[j] <= 0x37:
                    j += 1
                out.append(int(data[i:j], 8) & 0xFF)
                i = j
            elif e == 0x0D:
                # line continuation
                i += 1
                if i < n and data[i] == 0x0A:
                    i += 1
            elif e == 0x0A:
                i += 1
            else:
                out.append(e)
                i += 1
            continue
        if c == 0x28:
            depth += 1
        elif c == 0x29:
            depth -= 1
            if depth == 0:
                return bytes(out)
        out.append(c)
        i += 1
    return None


def decode_text_string(raw: bytes) -> str:
    """Turn the octets of a PDF text string into ``str``."""
    if raw.startswith(b"\xfe\xff"):
        return raw[2:].decode("utf-16-be", errors="replace")
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def parse_pdf_date(raw: bytes) -> str | None:
    """Normalise a ``D:YYYYMMDDHHmmSSOHH'mm`` date string to ISO-8601.

    Missing components take the PDF defaults (month and day 1, time zero).
    Without an offset the result is a naive timestamp.  Returns ``None`` for
    anything that is not a date.
    """
    match = _PDF_DATE.match(raw.strip())
    if match is None:
        return None
    year, month, day, hour, minute, second, offset = match.groups()
    try:
        tz: timezone | None = None
        if offset is not None:
            text = offset.decode("ascii").replace("'", "")
            if text in ("Z", "z"):
                tz = timezone.utc
            else:
                sign = -1 if text[0] == "-" else 1
                hours = int(text[1:3])
                minutes = int(text[3:5]) if len(text) >= 5 else 0
                tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
        value = datetime(
            int(year),
            int(month or b"01"),
            int(day or b"01"),
            int(hour or b"00"),
            int(minute or b"00"),
            int(second or b"00"),
            tzinfo=tz,
        )
    except ValueError:
        return None
    return value.isoformat()


# ---------------------------------------------------------------------------
# Locator
# ---------------------------------------------------------------------------


class _SkipMarker(Exception):
    """A marker whose dictionary lacks a required field."""


class SignatureLocator(Protocol):
    """Anything that can turn document bytes into scan outcomes."""

    def scan(self, pdf_bytes: bytes) -> list[ScanOutcome]: ...


class RegexSignatureLocator:
    """Windowed pattern scan around every ``/Type /Sig`` marker."""

    def __init__(self, settings: PdfSigSettings | None = None) -> None:
        self._settings = settings or DEFAULT_SETTINGS

    def scan(self, pdf_bytes: bytes) -> list[ScanOutcome]:
        """Return one outcome per marker, in document order.

        Indexes are assigned to located signatures only, so a skipped marker
        never leaves a gap.
        """
        data = bytes(pdf_bytes)
        outcomes: list[ScanOutcome] = []
        index = 0

        for marker in SIG_MARKER.finditer(data):
            offset = marker.start()
            try:
                start, end = self._window(data, offset, marker.end())
                signature = self._parse(data[start:end], index, offset)
            except _SkipMarker as exc:
                logger.debug("Skipping signature marker at %d: %s", offset, exc)
                outcomes.append(SkippedSignature(offset=offset, reason=str(exc)))
                continue
            except Exception as exc:
                logger.warning(
                    "Error extracting signature at offset %d (index %d): %s",
                    offset,
                    index,
                    exc,
                )
                outcomes.append(
                    SkippedSignature(offset=offset, reason=f"extraction error: {exc}")
                )
                continue
            outcomes.append(LocatedSignature(offset=offset, signature=signature))
            index += 1

        return outcomes

    def extract(self, pdf_bytes: bytes) -> list[ExtractedSignature]:
        """Return the located signatures only."""
        return [
            outcome.signature
            for outcome in self.scan(pdf_bytes)
            if isinstance(outcome, LocatedSignature)
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _window(self, data: bytes, marker_start: int, marker_end: int) -> tuple[int, int]:
        """Bytes to search for the fields of the dictionary at *marker_start*.

        The fixed window is clipped to the enclosing indirect object, and
        widened up to ``max_object_span`` when the object runs past it.  An
        object missing its ``endobj`` ends at the next object header or
        signature marker, whichever comes first.
        """
        s = self._settings

        start = max(0, marker_start - s.search_window_before)
        header = None
        for header in _OBJ_HEADER.finditer(
            data, max(0, marker_start - s.max_object_span), marker_start
        ):
            pass
        if header is not None:
            start = header.start()
        closed = data.rfind(_ENDOBJ, start, marker_start)
        if closed != -1:
            start = closed + len(_ENDOBJ)

        limit = marker_start + s.max_object_span
        boundaries = [data.find(_ENDOBJ, marker_end, limit)]
        for pattern in (_OBJ_HEADER, SIG_MARKER):
            match = pattern.search(data, marker_end, limit)
            if match is not None:
                boundaries.append(match.start())
        boundaries = [b for b in boundaries if b != -1]
        if boundaries:
            end = min(boundaries)
        else:
            end = min(len(data), marker_end + s.search_window_after)
        return start, end

    def _parse(self, window: bytes, index: int, offset: int) -> ExtractedSignature:
        byte_range_match = _BYTE_RANGE.search(window)
        if byte_range_match is None:
            raise _SkipMarker("no /ByteRange with four integers")

        contents_match = _CONTENTS.search(window)
        if contents_match is None:
            raise _SkipMarker("no hex /Contents")

        byte_range = tuple(int(g) for g in byte_range_match.groups())
        contents = decode_hex_contents(contents_match.group(1))

        text: dict[str, str | None] = {}
        for field, key in _TEXT_FIELDS.items():
            raw = _literal_field(window, key)
            text[field] = decode_text_string(raw) if raw is not None else None

        raw_date = _literal_field(window, b"M")
        signing_time = parse_pdf_date(raw_date) if raw_date is not None else None

        return ExtractedSignature(
            index=index,
            contents=contents,
            byte_range=byte_range,
            signing_time=signing_time,
            offset=offset,
            **text,
        )


def _literal_field(window: bytes, key: bytes) -> bytes | None:
    match = re.search(rb"/" + key + rb"\s*\(", window)
    if match is None:
        return None
    return read_literal_string(window, match.end())


def extract_signatures(
    pdf_bytes: bytes, settings: PdfSigSettings | None = None
) -> list[ExtractedSignature]:
    """Return every well-formed signature dictionary in *pdf_bytes*.

    Never raises; malformed dictionaries are left out.
    """
    return RegexSignatureLocator(settings).extract(pdf_bytes)


__all__ = [
    "SIG_MARKER",
    "RegexSignatureLocator",
    "SignatureLocator",
    "decode_hex_contents",
    "decode_text_string",
    "extract_signatures",
    "parse_pdf_date",
    "read_literal_string",
    "strip_trailing_zeros",
]
