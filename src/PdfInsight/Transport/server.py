"""
PdfInsight MCP server.

Registers three tools on a FastMCP instance:
  list_pdfs       - registered local documents and allowed remote origins
  read_pdf_bytes  - one bounded chunk of a document (base64 payload)
  display_pdf     - validate a document and describe the viewer to open

The handlers themselves live in :mod:`PdfInsight.Transport.tools`; this module
only adapts their result mappings to FastMCP (structured output on success,
``ToolError`` on failure).
"""

import logging
from typing import Annotated, Any, Dict, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from . import tools
from .config.models import MAX_CHUNK_BYTES, PdfInsightConfig
from .tools import ToolContext

LOGGER = logging.getLogger(__name__)

SERVER_NAME = "PDF Server"

__all__ = ["create_server", "SERVER_NAME"]


def _unwrap(result: Dict[str, Any]) -> Dict[str, Any]:
    if result.get("isError"):
        text = " ".join(item.get("text", "") for item in result.get("content", []))
        raise ToolError(text or "Tool call failed")
    return result["structuredContent"]


def create_server(
    config: Optional[PdfInsightConfig] = None,
    *,
    context: Optional[ToolContext] = None,
) -> FastMCP:
    """Build the FastMCP server bound to ``context`` (created from ``config`` if omitted)."""

    ctx = context or ToolContext.from_config(config)
    mcp = FastMCP(
        SERVER_NAME,
        instructions=(
            "Interactive PDF viewer. Call display_pdf to open a document; the viewer "
            "fetches bytes through read_pdf_bytes in chunks."
        ),
    )

    @mcp.tool(name="list_pdfs", description="List available PDFs that can be displayed")
    def list_pdfs() -> Dict[str, Any]:
        return _unwrap(tools.list_pdfs(ctx))

    @mcp.tool(
        name="read_pdf_bytes",
        description=f"Read a range of bytes from a PDF (max {ctx.max_chunk_bytes // 1024}KB per request)",
    )
    def read_pdf_bytes(
        url: Annotated[str, Field(description="PDF URL")],
        offset: Annotated[int, Field(ge=0, description="Byte offset")] = 0,
        byteCount: Annotated[int, Field(ge=1, description="Bytes to read")] = MAX_CHUNK_BYTES,
    ) -> Dict[str, Any]:
        return _unwrap(tools.read_pdf_bytes(ctx, url, offset, byteCount))

    @mcp.tool(name="display_pdf", description=tools.display_pdf_description(ctx))
    def display_pdf(
        url: Annotated[
            Optional[str], Field(description="PDF URL; the configured default when omitted")
        ] = None,
        page: Annotated[int, Field(ge=1, description="Initial page")] = 1,
    ) -> Dict[str, Any]:
        result = tools.display_pdf(ctx, url, page)
        return {**_unwrap(result), **result.get("_meta", {})}

    LOGGER.info(
        "Server configured",
        extra={
            "extra_fields": {
                "local_documents": len(ctx.validator.allow_list.local_paths),
                "remote_origins": len(ctx.validator.allow_list.remote_origins),
                "config_hash": ctx.config.config_hash()[:12],
            }
        },
    )
    return mcp
