"""Decoder seam.

The render scheduler treats decoding as opaque: given bytes it obtains a
:class:`DocumentHandle` that reports a page count and hands out page handles;
a :class:`PageHandle` computes a viewport for a scale, renders into an
off-screen :class:`~PdfInsight.Viewer.surface.Frame` and extracts its text.
:mod:`PdfInsight.Viewer.pymupdf_decoder` provides the production
implementation; tests substitute lightweight fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .surface import Frame

__all__ = ["Viewport", "PageHandle", "DocumentHandle", "Decoder"]


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float
    scale: float


class PageHandle(Protocol):
    number: int

    def viewport(self, scale: float) -> Viewport: ...

    def render(self, viewport: Viewport) -> Frame: ...

    def text(self) -> str: ...


class DocumentHandle(Protocol):
    @property
    def page_count(self) -> int: ...

    def get_page(self, number: int) -> PageHandle: ...

    def close(self) -> None: ...


class Decoder(Protocol):
    def load(self, data: bytes) -> DocumentHandle:
        """Decode ``data``; raises ``DecodeFailed`` when it is not a document."""
        ...
