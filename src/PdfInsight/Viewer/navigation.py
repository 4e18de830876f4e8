"""Viewer navigation: page controls, keyboard and wheel input, last-page memory.

Every input funnels into :meth:`RenderScheduler.request_page` or the zoom
methods, so bursts of key presses or wheel events are coalesced by the
scheduler rather than queued here.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from .scheduler import RenderScheduler

__all__ = ["SCROLL_THRESHOLD", "PageStore", "MemoryPageStore", "NavigationController"]

LOGGER = logging.getLogger(__name__)

SCROLL_THRESHOLD = 50.0

_PREV_KEYS = frozenset({"ArrowLeft", "PageUp"})
_NEXT_KEYS = frozenset({"ArrowRight", "PageDown", " "})
_ZOOM_IN_KEYS = frozenset({"+", "="})
_ZOOM_OUT_KEYS = frozenset({"-"})


class PageStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryPageStore:
    """In-process :class:`PageStore`."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class NavigationController:
    def __init__(
        self,
        scheduler: RenderScheduler,
        page_store: Optional[PageStore] = None,
        *,
        view_uuid: Optional[str] = None,
        scroll_threshold: float = SCROLL_THRESHOLD,
    ) -> None:
        self.scheduler = scheduler
        self.page_store = page_store
        self.view_uuid = view_uuid
        self.scroll_threshold = scroll_threshold
        self._scroll_accumulator = 0.0

    # -- pages ---------------------------------------------------------

    def go_to_page(self, page: int) -> int:
        """Request ``page`` and remember it; returns the clamped current page."""

        self.scheduler.request_page(page)
        self.save_current_page()
        return self.scheduler.current_page

    def prev_page(self) -> int:
        return self.go_to_page(self.scheduler.current_page - 1)

    def next_page(self) -> int:
        return self.go_to_page(self.scheduler.current_page + 1)

    # -- persistence ---------------------------------------------------

    def save_current_page(self) -> None:
        if not self.view_uuid or self.page_store is None:
            return
        try:
            self.page_store.set(self.view_uuid, str(self.scheduler.current_page))
        except OSError as exc:
            LOGGER.error("Could not save current page for %s: %s", self.view_uuid, exc)

    def load_saved_page(self) -> Optional[int]:
        if not self.view_uuid or self.page_store is None:
            return None
        try:
            saved = self.page_store.get(self.view_uuid)
        except OSError as exc:
            LOGGER.error("Could not load saved page for %s: %s", self.view_uuid, exc)
            return None
        if not saved:
            return None
        try:
            page = int(saved)
        except ValueError:
            return None
        return page if page >= 1 else None

    # -- input ---------------------------------------------------------

    def handle_key(self, key: str, *, ctrl: bool = False, meta: bool = False) -> bool:
        """Apply a key press. Returns True when the key was consumed."""

        if (ctrl or meta) and key == "0":
            self.scheduler.reset_zoom()
            return True
        if key in _PREV_KEYS:
            self.prev_page()
        elif key in _NEXT_KEYS:
            self.next_page()
        elif key in _ZOOM_IN_KEYS:
            self.scheduler.zoom_in()
        elif key in _ZOOM_OUT_KEYS:
            self.scheduler.zoom_out()
        else:
            return False
        return True

    def handle_wheel(self, delta_x: float, delta_y: float) -> bool:
        """Accumulate horizontal wheel motion and flip pages past the threshold.

        Vertical-dominant motion and zoomed-in views (scale above 1.0) are left
        to the host for scrolling; returns False for those.
        """

        if abs(delta_x) <= abs(delta_y):
            return False
        if self.scheduler.scale > 1.0:
            return False

        self._scroll_accumulator += delta_x
        if self._scroll_accumulator > self.scroll_threshold:
            self.next_page()
            self._scroll_accumulator = 0.0
        elif self._scroll_accumulator < -self.scroll_threshold:
            self.prev_page()
            self._scroll_accumulator = 0.0
        return True
