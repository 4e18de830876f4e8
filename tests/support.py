"""Test doubles shared across the transport and viewer suites."""

from __future__ import annotations

import re
import threading
from typing import Dict, List, Optional

import httpx

from PdfInsight.Transport.errors import DecodeFailed
from PdfInsight.Viewer.decoder import Viewport
from PdfInsight.Viewer.surface import Frame

ORIGIN_URL = "https://arxiv.org/pdf/1706.03762"

_RANGE_RE = re.compile(r"bytes=(\d+)-(\d+)")


def make_bytes(size: int) -> bytes:
    """Deterministic, non-text payload including zero bytes."""

    return bytes((i * 7 + 3) % 256 for i in range(size))


# --- Fake origin ---


class RangeOrigin:
    """In-memory HTTP origin for ``httpx.MockTransport``.

    Args:
        documents: URL to body mapping.
        mode: ``"range"`` (206 with Content-Range), ``"full"`` (ignores Range,
            always 200), ``"star"`` (206 with ``bytes a-b/*``) or ``"bare"``
            (206 without Content-Range).
        redirects: URL to redirect target mapping (302).
    """

    def __init__(
        self,
        documents: Dict[str, bytes],
        *,
        mode: str = "range",
        redirects: Optional[Dict[str, str]] = None,
        status_override: Optional[int] = None,
    ) -> None:
        self.documents = documents
        self.mode = mode
        self.redirects = redirects or {}
        self.status_override = status_override
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.redirects:
            return httpx.Response(302, headers={"Location": self.redirects[url]})
        if self.status_override is not None:
            return httpx.Response(self.status_override, content=b"nope")
        body = self.documents.get(url)
        if body is None:
            return httpx.Response(404, content=b"missing")

        match = _RANGE_RE.fullmatch(request.headers.get("Range", ""))
        if self.mode == "full" or match is None:
            return httpx.Response(200, content=body)

        start, last = int(match.group(1)), int(match.group(2))
        if start >= len(body):
            return httpx.Response(416, headers={"Content-Range": f"bytes */{len(body)}"})
        end = min(last + 1, len(body))
        chunk = body[start:end]
        headers = {}
        if self.mode == "range":
            headers["Content-Range"] = f"bytes {start}-{end - 1}/{len(body)}"
        elif self.mode == "star":
            headers["Content-Range"] = f"bytes {start}-{end - 1}/*"
        return httpx.Response(206, content=chunk, headers=headers)


# --- Fake decoder ---


class FakePage:
    def __init__(self, decoder: "FakeDecoder", number: int) -> None:
        self._decoder = decoder
        self.number = number

    def viewport(self, scale: float):
        return Viewport(width=100 * scale, height=200 * scale, scale=scale)

    def render(self, viewport):
        decoder = self._decoder
        with decoder.lock:
            decoder.rendered.append((self.number, viewport.scale))
            gate = decoder.gates.get(self.number)
        if gate is not None:
            entered, release = gate
            entered.set()
            assert release.wait(timeout=5), "test never released the render gate"
        if self.number in decoder.failing:
            raise RuntimeError(f"cannot paint page {self.number}")
        return Frame(
            page=self.number,
            scale=viewport.scale,
            width=int(viewport.width),
            height=int(viewport.height),
            pixels=bytes([self.number % 256]) * 4,
        )

    def text(self) -> str:
        with self._decoder.lock:
            self._decoder.texts.append(self.number)
        return f"Page   {self.number}\n  body text"


class FakeDocument:
    def __init__(self, decoder: "FakeDecoder", pages: int) -> None:
        self._decoder = decoder
        self.page_count = pages
        self.closed = False

    def get_page(self, number: int) -> FakePage:
        if not 1 <= number <= self.page_count:
            raise IndexError(number)
        return FakePage(self._decoder, number)

    def close(self) -> None:
        self.closed = True


class FakeDecoder:
    """Decoder double; ``block(page)`` makes renders of ``page`` wait for release."""

    def __init__(self, pages: int = 10) -> None:
        self.pages = pages
        self.lock = threading.Lock()
        self.rendered: List[tuple] = []
        self.texts: List[int] = []
        self.failing: set = set()
        self.gates: Dict[int, tuple] = {}
        self.documents: List[FakeDocument] = []

    def block(self, page: int):
        gate = (threading.Event(), threading.Event())
        with self.lock:
            self.gates[page] = gate
        return gate

    def load(self, data: bytes) -> FakeDocument:
        if not data.startswith(b"%PDF"):
            raise DecodeFailed("Not a readable PDF document")
        document = FakeDocument(self, self.pages)
        self.documents.append(document)
        return document
