"""Runtime settings for aumai-pdfsig.

Settings are read once, from keyword arguments or ``PDFSIG_*`` environment
variables, and are immutable afterwards.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class PdfSigSettings(BaseModel):
    """Tunables for the locator, batch validation and certificate fetching."""

    model_config = ConfigDict(frozen=True)

    # ------------------------------------------------------------------
    # Locator
    # ------------------------------------------------------------------

    search_window_before: int = Field(
        5000,
        gt=0,
        description="Bytes scanned before a /Type /Sig marker",
    )

    search_window_after: int = Field(
        10000,
        gt=0,
        description="Bytes scanned after a /Type /Sig marker",
    )

    max_object_span: int = Field(
        1024 * 1024,
        gt=0,
        description=(
            "Upper bound for extending the window to the enclosing object's "
            "endobj, so large reserved /Contents strings are not cut off"
        ),
    )

    # ------------------------------------------------------------------
    # Batch validation
    # ------------------------------------------------------------------

    max_workers: int = Field(
        1,
        ge=1,
        description="Threads used to validate signatures; 1 validates inline",
    )

    log_level: str = Field("WARNING", description="Level used by the CLI")

    # ------------------------------------------------------------------
    # Certificate fetching
    # ------------------------------------------------------------------

    fetch_timeout_seconds: float = Field(10.0, gt=0)

    fetch_user_agent: str = Field("aumai-pdfsig-certfetch/1.0")

    relay_url: str | None = Field(
        None,
        description="Relay endpoint; the target is passed as ?url=<target>",
    )

    fetch_origin: str | None = Field(
        None,
        description=(
            "Origin header sent with every fetch, for relays that check it "
            "against an allow-list"
        ),
    )

    @field_validator("max_object_span")
    @classmethod
    def span_covers_window(cls, v: int, info: ValidationInfo) -> int:
        after = info.data.get("search_window_after")
        if after is not None and v < after:
            raise ValueError(
                f"max_object_span ({v}) must be >= search_window_after ({after})"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{v}'")
        return level

    @classmethod
    def from_env(cls) -> PdfSigSettings:
        """Build settings from ``PDFSIG_*`` environment variables."""
        return cls(
            search_window_before=int(
                os.getenv("PDFSIG_SEARCH_WINDOW_BEFORE", "5000")
            ),
            search_window_after=int(
                os.getenv("PDFSIG_SEARCH_WINDOW_AFTER", "10000")
            ),
            max_object_span=int(
                os.getenv("PDFSIG_MAX_OBJECT_SPAN", str(1024 * 1024))
            ),
            max_workers=int(os.getenv("PDFSIG_MAX_WORKERS", "1")),
            log_level=os.getenv("PDFSIG_LOG_LEVEL", "WARNING"),
            fetch_timeout_seconds=float(os.getenv("PDFSIG_FETCH_TIMEOUT", "10")),
            fetch_user_agent=os.getenv(
                "PDFSIG_FETCH_USER_AGENT", "aumai-pdfsig-certfetch/1.0"
            ),
            relay_url=os.getenv("PDFSIG_RELAY_URL") or None,
            fetch_origin=os.getenv("PDFSIG_FETCH_ORIGIN") or None,
        )


DEFAULT_SETTINGS = PdfSigSettings()


__all__ = ["DEFAULT_SETTINGS", "PdfSigSettings"]
