# === NAVMAP v1 ===
# {
#   "module": "PdfInsight.Transport.tools",
#   "purpose": "Tool handlers: list_pdfs, read_pdf_bytes, display_pdf",
#   "sections": [
#     {
#       "id": "toolcontext",
#       "name": "ToolContext",
#       "anchor": "class-toolcontext",
#       "kind": "class"
#     },
#     {
#       "id": "list-pdfs",
#       "name": "list_pdfs",
#       "anchor": "function-list-pdfs",
#       "kind": "function"
#     },
#     {
#       "id": "read-pdf-bytes",
#       "name": "read_pdf_bytes",
#       "anchor": "function-read-pdf-bytes",
#       "kind": "function"
#     },
#     {
#       "id": "display-pdf",
#       "name": "display_pdf",
#       "anchor": "function-display-pdf",
#       "kind": "function"
#     },
#     {
#       "id": "call-tool",
#       "name": "call_tool",
#       "anchor": "function-call-tool",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Tool handlers exposed to hosts.

Each handler returns a tool result mapping: ``content`` (list of text items)
plus either ``structuredContent`` on success or ``isError: True`` on failure.
Handlers never raise for expected failures; access and transport errors are
converted with :func:`~PdfInsight.Transport.errors.error_result`.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from .access import AccessValidator
from .codec import encode_chunk, to_wire
from .config.models import PdfInsightConfig
from .errors import PdfInsightError, error_result
from .http import build_http_client
from .range_reader import RangeReadService

__all__ = [
    "ToolContext",
    "list_pdfs",
    "read_pdf_bytes",
    "display_pdf",
    "call_tool",
    "TOOL_HANDLERS",
]

LOGGER = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Everything a handler needs: configuration, validator and range reader."""

    config: PdfInsightConfig
    validator: AccessValidator
    reader: RangeReadService
    client: Optional[httpx.Client] = None

    @classmethod
    def from_config(
        cls,
        config: Optional[PdfInsightConfig] = None,
        *,
        client: Optional[httpx.Client] = None,
    ) -> "ToolContext":
        cfg = config or PdfInsightConfig()
        validator = AccessValidator.from_config(cfg.access)
        http_client = client if client is not None else build_http_client(cfg.http)
        reader = RangeReadService(
            validator,
            http_client,
            max_chunk_bytes=cfg.transport.max_chunk_bytes,
            max_redirects=cfg.transport.max_redirects,
        )
        return cls(config=cfg, validator=validator, reader=reader, client=http_client)

    @property
    def max_chunk_bytes(self) -> int:
        return self.reader.max_chunk_bytes

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


def _text(text: str) -> list[dict[str, str]]:
    return [{"type": "text", "text": text}]


def _require_int(name: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def list_pdfs(ctx: ToolContext) -> Dict[str, Any]:
    local = [ref.url for ref in ctx.validator.local_documents()]
    origins = list(ctx.validator.allow_list.remote_origins)
    origin_text = ", ".join(origins)
    if local:
        listing = "\n".join(f"- {url} (local)" for url in local)
        text = (
            f"Available PDFs:\n{listing}\n\n"
            f"Remote PDFs from {origin_text} can also be loaded dynamically."
        )
    else:
        text = f"No local PDFs configured. Remote PDFs from {origin_text} can be loaded dynamically."
    return {
        "content": _text(text),
        "structuredContent": {"localFiles": local, "allowedOrigins": origins},
    }


def read_pdf_bytes(
    ctx: ToolContext,
    url: str,
    offset: int = 0,
    byteCount: Optional[int] = None,
) -> Dict[str, Any]:
    """Return one chunk of ``url``. ``byteCount`` above the cap is clamped."""

    try:
        offset = _require_int("offset", offset, 0)
        count = ctx.max_chunk_bytes if byteCount is None else _require_int("byteCount", byteCount, 1)
        reference = ctx.validator.validate(url)
        result = ctx.reader.read_range(reference, offset, count)
    except (PdfInsightError, ValueError) as exc:
        return error_result(exc)
    except Exception as exc:
        LOGGER.exception("read_pdf_bytes failed for %s", url)
        return error_result(exc)

    message = encode_chunk(reference.url, result)
    total_text = message.total_bytes if message.total_known else "unknown"
    return {
        "content": _text(f"{message.byte_count} bytes at {message.offset}/{total_text}"),
        "structuredContent": to_wire(message),
    }


def _allowed_domains(ctx: ToolContext) -> str:
    return ", ".join(
        re.sub(r"^https?://(www\.)?", "", origin) for origin in ctx.validator.allow_list.remote_origins
    )


def display_pdf_description(ctx: ToolContext) -> str:
    return (
        "Display an interactive PDF viewer.\n\nAccepts:\n"
        "- Local files explicitly added to the server (use list_pdfs to see available files)\n"
        f"- Remote PDFs from: {_allowed_domains(ctx)}"
    )


def display_pdf(ctx: ToolContext, url: Optional[str] = None, page: int = 1) -> Dict[str, Any]:
    """Validate ``url`` (default document when omitted) and describe the view to open."""

    try:
        page = _require_int("page", page, 1)
        reference = ctx.validator.validate(url or ctx.config.default_document)
    except (PdfInsightError, ValueError) as exc:
        return error_result(exc)

    view_uuid = str(uuid.uuid4())
    LOGGER.info(
        "display_pdf",
        extra={
            "extra_fields": {
                "url": reference.url,
                "kind": reference.kind,
                "page": page,
                "view_uuid": view_uuid,
            }
        },
    )
    return {
        "content": _text(f"Displaying PDF: {reference.url}"),
        "structuredContent": {"url": reference.url, "initialPage": page},
        "_meta": {"viewUUID": view_uuid},
    }


TOOL_HANDLERS: Dict[str, Callable[..., Dict[str, Any]]] = {
    "list_pdfs": list_pdfs,
    "read_pdf_bytes": read_pdf_bytes,
    "display_pdf": display_pdf,
}


def call_tool(ctx: ToolContext, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Dispatch a tool call by name; unknown tools yield an error result."""

    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        return error_result(PdfInsightError(f"Unknown tool: {name}"))
    try:
        return handler(ctx, **dict(arguments or {}))
    except TypeError as exc:
        return error_result(ValueError(f"Invalid arguments for {name}: {exc}"))
