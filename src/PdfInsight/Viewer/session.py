"""One viewer session: load a displayed document and drive its rendering.

Mirrors the host-side flow after ``display_pdf``: reassemble the bytes through
a :class:`~PdfInsight.Viewer.transport.ChunkTransport`, hand them to the
render scheduler, restore the last page viewed under the same ``viewUUID``
and paint it.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from typing import Any, Mapping, Optional

from ..Transport.config.models import ViewerConfig
from .context import build_page_context
from .decoder import Decoder
from .loader import ProgressCallback, fetch_all
from .navigation import NavigationController, PageStore
from .scheduler import ErrorCallback, RenderedCallback, RenderScheduler
from .surface import Surface
from .transport import ChunkTransport

__all__ = ["ViewerSession"]

LOGGER = logging.getLogger(__name__)


class ViewerSession:
    """Single-document viewer built from a transport and a decoder."""

    def __init__(
        self,
        transport: ChunkTransport,
        decoder: Decoder,
        *,
        config: Optional[ViewerConfig] = None,
        page_store: Optional[PageStore] = None,
        surface: Optional[Surface] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_rendered: Optional[RenderedCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.config = config or ViewerConfig()
        self.transport = transport
        self.on_progress = on_progress
        self.scheduler = RenderScheduler(
            decoder,
            surface,
            on_rendered=on_rendered,
            on_error=on_error,
            executor=executor,
            default_zoom=self.config.default_zoom,
        )
        self.navigation = NavigationController(
            self.scheduler,
            page_store,
            scroll_threshold=self.config.scroll_threshold,
        )
        self.url: Optional[str] = None
        self.title: Optional[str] = None
        self._cancel = threading.Event()

    def open(self, display: Mapping[str, Any]) -> int:
        """Open the document described by a ``display_pdf`` result.

        ``display`` may be the full tool result or its ``structuredContent``;
        ``viewUUID`` is read from ``_meta`` or from the mapping itself.

        Returns:
            The page requested for the first paint.

        Raises:
            ToolCallError, TransportDecodeError, LoadCancelled: Loading failed.
            DecodeFailed: The bytes are not a readable document.
        """

        structured = display.get("structuredContent", display)
        meta = display.get("_meta") or {}
        self.url = structured["url"]
        self.title = structured.get("title")
        self.navigation.view_uuid = meta.get("viewUUID") or structured.get("viewUUID")

        data = fetch_all(
            self.transport,
            self.url,
            self.on_progress,
            chunk_size=self.config.chunk_size_bytes,
            cancel=self._cancel,
        )
        self.scheduler.load(data)

        page = self.navigation.load_saved_page() or int(structured.get("initialPage", 1))
        LOGGER.info("Opened %s (%d bytes), starting at page %d", self.url, len(data), page)
        self.navigation.go_to_page(page)
        return self.scheduler.current_page

    def page_context(self, selected: Optional[str] = None, tool_id: Optional[str] = None) -> str:
        state = self.scheduler.get_state()
        text = self.scheduler.get_page_text(state.current_page)
        return build_page_context(
            self.url or "",
            state.current_page,
            state.total_pages,
            text,
            title=self.title,
            selected=selected,
            tool_id=tool_id,
            max_length=self.config.max_context_chars,
        )

    def close(self) -> None:
        self._cancel.set()
        self.scheduler.close()

    def __enter__(self) -> "ViewerSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
