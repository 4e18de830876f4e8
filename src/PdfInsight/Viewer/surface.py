"""Destination surface for rendered pages.

Pages are painted into an off-screen :class:`Frame` first; :meth:`Surface.commit`
then swaps the whole frame in under a lock, so a reader never observes a
partially painted page.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

__all__ = ["Frame", "Surface"]


@dataclass(frozen=True)
class Frame:
    page: int
    scale: float
    width: int
    height: int
    pixels: bytes = b""


class Surface:
    """Holds the last committed frame and the text layer of the displayed page."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[Frame] = None
        self._text_page: Optional[int] = None
        self._text = ""
        self._commits = 0

    def commit(self, frame: Frame) -> None:
        with self._lock:
            self._frame = frame
            self._commits += 1

    def commit_text(self, page: int, text: str) -> None:
        with self._lock:
            self._text_page = page
            self._text = text

    @property
    def frame(self) -> Optional[Frame]:
        with self._lock:
            return self._frame

    @property
    def commits(self) -> int:
        with self._lock:
            return self._commits

    def text_for(self, page: int) -> Optional[str]:
        """Text layer for ``page`` if it is the one currently published."""

        with self._lock:
            return self._text if self._text_page == page else None
