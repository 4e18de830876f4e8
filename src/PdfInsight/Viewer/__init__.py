"""
PdfInsight Viewer

Consumer side of the chunked document transport: reassembles chunk replies
into a document buffer and renders it page by page with a cancellable,
latest-wins scheduler.

Example:
    from PdfInsight.Transport import ToolContext
    from PdfInsight.Viewer import InProcessTransport, ViewerSession
    from PdfInsight.Viewer.pymupdf_decoder import PyMuPdfDecoder

    ctx = ToolContext.from_config()
    with ViewerSession(InProcessTransport(ctx), PyMuPdfDecoder()) as session:
        session.open({"url": "https://arxiv.org/pdf/1706.03762", "initialPage": 1})
        session.navigation.next_page()
"""

from .context import build_page_context, find_selection_in_text, format_page_content
from .decoder import Decoder, DocumentHandle, PageHandle, Viewport
from .loader import CHUNK_SIZE, ReassemblyState, fetch_all
from .navigation import MemoryPageStore, NavigationController, PageStore
from .scheduler import (
    DEFAULT_ZOOM,
    ZOOM_LEVELS,
    RenderScheduler,
    RenderState,
    RenderTarget,
)
from .session import ViewerSession
from .surface import Frame, Surface
from .transport import ChunkTransport, InProcessTransport, ToolCallTransport

__all__ = [
    "build_page_context",
    "find_selection_in_text",
    "format_page_content",
    "Decoder",
    "DocumentHandle",
    "PageHandle",
    "Viewport",
    "CHUNK_SIZE",
    "ReassemblyState",
    "fetch_all",
    "MemoryPageStore",
    "NavigationController",
    "PageStore",
    "DEFAULT_ZOOM",
    "ZOOM_LEVELS",
    "RenderScheduler",
    "RenderState",
    "RenderTarget",
    "ViewerSession",
    "Frame",
    "Surface",
    "ChunkTransport",
    "InProcessTransport",
    "ToolCallTransport",
]
