# === NAVMAP v1 ===
# {
#   "module": "PdfInsight.Transport.errors",
#   "purpose": "Error taxonomy and tool-result helpers for document transport and rendering.",
#   "sections": [
#     {
#       "id": "pdfinsighterror",
#       "name": "PdfInsightError",
#       "anchor": "class-pdfinsighterror",
#       "kind": "class"
#     },
#     {
#       "id": "accesserror",
#       "name": "AccessError",
#       "anchor": "class-accesserror",
#       "kind": "class"
#     },
#     {
#       "id": "get-actionable-error-message",
#       "name": "get_actionable_error_message",
#       "anchor": "function-get-actionable-error-message",
#       "kind": "function"
#     },
#     {
#       "id": "error-result",
#       "name": "error_result",
#       "anchor": "function-error-result",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy and tool-result helpers for document transport and rendering.

Responsibilities
----------------
- Define the exception hierarchy raised by the access validator, the range
  read service, the chunk codec, the reassembly loop and the render scheduler.
- Keep enough metadata on each exception (offending reference, HTTP status,
  local path) for the tool layer to explain *why* a source was rejected.
- Convert any failure into the error payload returned by tool handlers via
  :func:`error_result`.

Design Notes
------------
- Validation errors (:class:`AccessError` subclasses) are terminal for the
  requested operation and are never retried.
- :class:`RenderCancelled` and :class:`LoadCancelled` are control-flow signals;
  the scheduler and the loader treat them as expected interruptions.
"""

from __future__ import annotations

import logging
from typing import Any

__all__ = (
    "PdfInsightError",
    "AccessError",
    "InvalidUrl",
    "OriginNotAllowed",
    "LocalNotAllowed",
    "LocalNotFound",
    "UpstreamRangeFailed",
    "IoError",
    "TransportDecodeError",
    "ToolCallError",
    "RenderCancelled",
    "LoadCancelled",
    "DecodeFailed",
    "get_actionable_error_message",
    "error_result",
)

LOGGER = logging.getLogger(__name__)


class PdfInsightError(Exception):
    """Base class for every error raised by PdfInsight."""

    reason_code = "error"


class AccessError(PdfInsightError):
    """Raised when a document reference fails validation."""

    reason_code = "access_denied"

    def __init__(self, message: str, *, reference: str | None = None) -> None:
        super().__init__(message)
        self.reference = reference


class InvalidUrl(AccessError):
    """Raised when a remote reference cannot be parsed as an http(s) URL."""

    reason_code = "invalid_url"


class OriginNotAllowed(AccessError):
    """Raised when a remote origin is not on the allow-list."""

    reason_code = "origin_not_allowed"

    def __init__(self, message: str, *, reference: str | None = None, origin: str | None = None):
        super().__init__(message, reference=reference)
        self.origin = origin


class LocalNotAllowed(AccessError):
    """Raised when a local path was never registered."""

    reason_code = "local_not_allowed"


class LocalNotFound(AccessError):
    """Raised when a registered local path no longer exists."""

    reason_code = "local_not_found"


class UpstreamRangeFailed(PdfInsightError):
    """Raised when a remote origin answers a range request with an unusable response."""

    reason_code = "upstream_range_failed"

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.details = details or {}


class IoError(PdfInsightError):
    """Raised when reading a local document fails."""

    reason_code = "io_error"

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class TransportDecodeError(PdfInsightError):
    """Raised when a chunk message is malformed or inconsistent."""

    reason_code = "transport_decode_error"


class ToolCallError(PdfInsightError):
    """Raised on the consumer side when a tool call returns an error result."""

    reason_code = "tool_error"


class RenderCancelled(PdfInsightError):
    """Signals that a render task observed cancellation. Never user-visible."""

    reason_code = "render_cancelled"


class LoadCancelled(PdfInsightError):
    """Signals that a reassembly loop was torn down before completion."""

    reason_code = "load_cancelled"


class DecodeFailed(PdfInsightError):
    """Raised when the decoder rejects a byte buffer as not a valid document."""

    reason_code = "decode_failed"


def get_actionable_error_message(exc: BaseException) -> tuple[str, str | None]:
    """Return ``(message, suggestion)`` for ``exc``.

    Examples:
        >>> msg, hint = get_actionable_error_message(OriginNotAllowed("Origin not allowed: https://x"))
        >>> msg
        'Origin not allowed: https://x'
        >>> hint
        'Only documents from the configured remote origins can be opened.'
    """

    message = str(exc) or type(exc).__name__
    if isinstance(exc, OriginNotAllowed):
        return message, "Only documents from the configured remote origins can be opened."
    if isinstance(exc, LocalNotAllowed):
        return message, "Register the file via PDF_LOCAL_FILES / PDF_LOCAL_DIRS or the config file."
    if isinstance(exc, LocalNotFound):
        return message, "The file was registered at startup but has since been moved or deleted."
    if isinstance(exc, InvalidUrl):
        return message, "Provide an absolute http(s) URL or a file:// URL."
    if isinstance(exc, UpstreamRangeFailed):
        if exc.status == 404:
            return message, "The document may have been moved or deleted at the origin."
        if exc.status is not None and exc.status >= 500:
            return message, "The origin server failed; reopen the document to retry."
        return message, "Check network connectivity to the origin."
    if isinstance(exc, IoError):
        return message, "Check file permissions on the server host."
    if isinstance(exc, DecodeFailed):
        return message, "The bytes retrieved are not a readable PDF document."
    return message, None


def error_result(exc: BaseException) -> dict[str, Any]:
    """Render ``exc`` as a tool error result (``isError`` flag plus a text message)."""

    message, _ = get_actionable_error_message(exc)
    if not isinstance(exc, AccessError):
        message = f"Error: {message}"
    LOGGER.debug(
        "tool error: %s",
        message,
        extra={"extra_fields": {"reason_code": getattr(exc, "reason_code", "error")}},
    )
    return {"content": [{"type": "text", "text": message}], "isError": True}
