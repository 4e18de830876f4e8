"""Consumer-side chunk transports.

A :class:`ChunkTransport` turns ``(url, offset, length)`` into a decoded
:class:`~PdfInsight.Transport.codec.ChunkMessage`. The reassembly loop only
depends on this protocol, so it runs unchanged against a remote host bridge
(:class:`ToolCallTransport`) or an in-process server (:class:`InProcessTransport`).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Optional, Protocol

from ..Transport.codec import ChunkMessage, from_wire
from ..Transport.errors import ToolCallError, TransportDecodeError
from ..Transport.tools import ToolContext, call_tool

__all__ = ["ChunkTransport", "ToolCallTransport", "InProcessTransport", "READ_TOOL"]

LOGGER = logging.getLogger(__name__)

READ_TOOL = "read_pdf_bytes"

CallTool = Callable[[str, Mapping[str, Any]], Mapping[str, Any]]


class ChunkTransport(Protocol):
    def read_chunk(self, url: str, offset: int, length: int) -> ChunkMessage: ...


class ToolCallTransport:
    """Issue ``read_pdf_bytes`` through a host-provided ``call_tool`` callable."""

    def __init__(self, call_tool: CallTool) -> None:
        self._call_tool = call_tool

    def read_chunk(self, url: str, offset: int, length: int) -> ChunkMessage:
        result = self._call_tool(READ_TOOL, {"url": url, "offset": offset, "byteCount": length})
        if result.get("isError"):
            text = " ".join(
                item.get("text", "") for item in result.get("content") or [] if isinstance(item, Mapping)
            )
            raise ToolCallError(f"Tool error: {text or 'unknown error'}")
        structured: Optional[Mapping[str, Any]] = result.get("structuredContent")
        if not structured:
            raise TransportDecodeError("No structuredContent in tool response")
        return from_wire(structured)


class InProcessTransport(ToolCallTransport):
    """Call the tool handlers directly, passing results through a JSON round trip."""

    def __init__(self, context: ToolContext) -> None:
        self.context = context
        super().__init__(self._dispatch)

    def _dispatch(self, name: str, arguments: Mapping[str, Any]) -> Mapping[str, Any]:
        result = call_tool(self.context, name, arguments)
        return json.loads(json.dumps(result))
