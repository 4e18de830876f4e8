"""
PdfInsight Transport

Server side of the chunked document transport: access validation, bounded
range reads from local files and remote origins, chunk encoding, and the
tool handlers that expose them.

Example:
    from PdfInsight.Transport import ToolContext, read_pdf_bytes

    ctx = ToolContext.from_config()
    result = read_pdf_bytes(ctx, "https://arxiv.org/abs/1706.03762", offset=0)
    result["structuredContent"]["hasMore"]
"""

from .access import AccessValidator, AllowList, LocalReference, RemoteReference
from .codec import ChunkMessage, encode_chunk, from_wire, to_wire
from .config import PdfInsightConfig, load_config
from .errors import (
    AccessError,
    DecodeFailed,
    InvalidUrl,
    IoError,
    LoadCancelled,
    LocalNotAllowed,
    LocalNotFound,
    OriginNotAllowed,
    PdfInsightError,
    RenderCancelled,
    ToolCallError,
    TransportDecodeError,
    UpstreamRangeFailed,
    error_result,
)
from .range_reader import RangeReadService, RangeResult
from .tools import ToolContext, call_tool, display_pdf, list_pdfs, read_pdf_bytes
from .urls import canonicalize, normalize_arxiv_url

__all__ = [
    "AccessValidator",
    "AllowList",
    "LocalReference",
    "RemoteReference",
    "ChunkMessage",
    "encode_chunk",
    "to_wire",
    "from_wire",
    "PdfInsightConfig",
    "load_config",
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
    "error_result",
    "RangeReadService",
    "RangeResult",
    "ToolContext",
    "call_tool",
    "list_pdfs",
    "read_pdf_bytes",
    "display_pdf",
    "canonicalize",
    "normalize_arxiv_url",
]
