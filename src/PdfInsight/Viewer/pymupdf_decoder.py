"""PyMuPDF implementation of the decoder seam."""

from __future__ import annotations

import logging
import threading

import pymupdf

from ..Transport.errors import DecodeFailed
from .decoder import Viewport
from .surface import Frame

__all__ = ["PyMuPdfDecoder", "PyMuPdfDocument", "PyMuPdfPage"]

LOGGER = logging.getLogger(__name__)


class PyMuPdfPage:
    """One page of a :class:`PyMuPdfDocument` (1-based ``number``)."""

    def __init__(self, document: "PyMuPdfDocument", number: int) -> None:
        self._document = document
        self.number = number

    def viewport(self, scale: float) -> Viewport:
        with self._document.lock:
            rect = self._document.doc.load_page(self.number - 1).rect
        return Viewport(width=rect.width * scale, height=rect.height * scale, scale=scale)

    def render(self, viewport: Viewport) -> Frame:
        matrix = pymupdf.Matrix(viewport.scale, viewport.scale)
        with self._document.lock:
            page = self._document.doc.load_page(self.number - 1)
            pixmap = page.get_pixmap(matrix=matrix, alpha=False)
            pixels = bytes(pixmap.samples)
        return Frame(
            page=self.number,
            scale=viewport.scale,
            width=pixmap.width,
            height=pixmap.height,
            pixels=pixels,
        )

    def text(self) -> str:
        with self._document.lock:
            return self._document.doc.load_page(self.number - 1).get_text()


class PyMuPdfDocument:
    """A loaded PDF. PyMuPDF objects are not thread-safe, so access is serialized."""

    def __init__(self, doc: "pymupdf.Document") -> None:
        self.doc = doc
        self.lock = threading.Lock()

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def get_page(self, number: int) -> PyMuPdfPage:
        if not 1 <= number <= self.page_count:
            raise IndexError(f"page {number} out of range 1..{self.page_count}")
        return PyMuPdfPage(self, number)

    def close(self) -> None:
        with self.lock:
            self.doc.close()


class PyMuPdfDecoder:
    """Decode PDF bytes with PyMuPDF."""

    def load(self, data: bytes) -> PyMuPdfDocument:
        if not data:
            raise DecodeFailed("Document is empty")
        try:
            doc = pymupdf.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise DecodeFailed(f"Not a readable PDF document: {exc}") from exc
        if not doc.is_pdf:
            doc.close()
            raise DecodeFailed("Not a PDF document")
        if doc.page_count < 1:
            doc.close()
            raise DecodeFailed("Document has no pages")
        LOGGER.debug("Decoded document with %d pages", doc.page_count)
        return PyMuPdfDocument(doc)
