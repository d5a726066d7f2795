"""Domain exceptions for the URL import pipeline.

Only two kinds ever reach the caller: ``URLValidationError`` (the input was
rejected outright) and ``ExtractionFailedError`` (every fallback of the chosen
strategy failed). Everything else is caught inside a strategy and converted
into a lower-confidence draft plus a warning. Each exception carries a stable
``error_code`` for log tagging.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, eq=False)
class URLImportError(Exception):
    """Base class for URL import domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class URLValidationError(URLImportError):
    def __init__(self, message: str = "Invalid URL format") -> None:
        super().__init__(message=message, error_code="invalid_url")


class PageFetchError(URLImportError):
    def __init__(self, message: str = "Failed to fetch page") -> None:
        super().__init__(message=message, error_code="fetch_failed")


class ProviderConfigurationError(URLImportError):
    def __init__(self, message: str = "Provider API is not configured") -> None:
        super().__init__(message=message, error_code="provider_unconfigured")


class ProviderAPIError(URLImportError):
    """A keyed provider API call failed (transport, timeout or non-2xx)."""

    status_code: int | None

    def __init__(
        self,
        message: str = "Provider API call failed",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, error_code="provider_api_error")
        self.status_code = status_code

    @property
    def field_mask_related(self) -> bool:
        """True when the API rejected the requested response fields."""
        if self.status_code != 400:
            return False
        lowered = self.message.lower()
        return any(
            marker in lowered
            for marker in (
                "fieldmask",
                "field mask",
                "unknown field",
                "invalid",
                "regularopeninghours",
            )
        )


class ExtractionFailedError(URLImportError):
    def __init__(self, message: str = "Could not extract a place from this URL") -> None:
        super().__init__(message=message, error_code="extraction_failed")
