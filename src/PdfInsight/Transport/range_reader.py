# === NAVMAP v1 ===
# {
#   "module": "PdfInsight.Transport.range_reader",
#   "purpose": "Bounded byte-range reads from local files and remote origins",
#   "sections": [
#     {
#       "id": "rangeresult",
#       "name": "RangeResult",
#       "anchor": "class-rangeresult",
#       "kind": "class"
#     },
#     {
#       "id": "clamp-range",
#       "name": "clamp_range",
#       "anchor": "function-clamp-range",
#       "kind": "function"
#     },
#     {
#       "id": "parse-content-range",
#       "name": "parse_content_range",
#       "anchor": "function-parse-content-range",
#       "kind": "function"
#     },
#     {
#       "id": "rangereadservice",
#       "name": "RangeReadService",
#       "anchor": "class-rangereadservice",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Bounded byte-range reads for validated document references.

Responsibilities
----------------
- Enforce the per-request byte cap before any I/O happens.
- Read local ranges with one ``seek``/``read`` per call.
- Issue remote ``Range`` requests and interpret ``206``, ``200`` and ``416``
  answers without ever reading more of a full-body response than needed.
- Report the total document size whenever the source reveals it.

Both branches share :func:`clamp_range`, so a local file and a remote copy of
the same document answer every ``(offset, length)`` request identically.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import httpx

from .access import AccessValidator, DocumentReference, LocalReference, RemoteReference
from .config.models import MAX_CHUNK_BYTES
from .errors import IoError, LocalNotFound, OriginNotAllowed, UpstreamRangeFailed
from .http import open_audited_stream

__all__ = [
    "RangeRequest",
    "RangeResult",
    "clamp_range",
    "effective_length",
    "parse_content_range",
    "RangeReadService",
]

LOGGER = logging.getLogger(__name__)

_CONTENT_RANGE_RE = re.compile(r"^\s*bytes\s+(\d+)-(\d+)/(\d+|\*)\s*$", re.IGNORECASE)
_UNSATISFIED_RANGE_RE = re.compile(r"^\s*bytes\s+\*/(\d+)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class RangeRequest:
    """A validated ``(reference, offset, requested_length)`` triple."""

    reference: DocumentReference
    offset: int
    requested_length: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")
        if self.requested_length < 1:
            raise ValueError(f"byte count must be >= 1, got {self.requested_length}")


@dataclass(frozen=True)
class RangeResult:
    """Bytes read for one request.

    Attributes:
        data: Bytes returned, ``len(data) <= requested length``.
        total_size: Full document size, or ``None`` when the source did not
            reveal it.
        offset: Offset the read started at.
        requested_length: Length after the per-request cap was applied.
    """

    data: bytes
    total_size: Optional[int]
    offset: int
    requested_length: int


def effective_length(requested: int, cap: int = MAX_CHUNK_BYTES) -> int:
    if requested < 1:
        raise ValueError(f"byte count must be >= 1, got {requested}")
    return min(requested, cap)


def clamp_range(offset: int, length: int, total: int) -> Tuple[int, int]:
    """Return ``(start, end)`` with ``0 <= start <= end <= total``."""

    start = min(max(offset, 0), total)
    end = min(start + length, total)
    return start, end


def parse_content_range(value: Optional[str]) -> Optional[Tuple[int, int, Optional[int]]]:
    """Parse ``bytes a-b/N`` into ``(a, b, N)``; ``N`` is ``None`` for ``*``."""

    if not value:
        return None
    match = _CONTENT_RANGE_RE.match(value)
    if not match:
        return None
    first, last, total = match.groups()
    return int(first), int(last), None if total == "*" else int(total)


class RangeReadService:
    """Serve bounded byte ranges of validated references."""

    def __init__(
        self,
        validator: AccessValidator,
        client: Optional[httpx.Client] = None,
        *,
        max_chunk_bytes: int = MAX_CHUNK_BYTES,
        max_redirects: int = 5,
    ) -> None:
        self._validator = validator
        self._client = client
        self.max_chunk_bytes = min(max_chunk_bytes, MAX_CHUNK_BYTES)
        self.max_redirects = max_redirects

    def read_range(self, reference: DocumentReference, offset: int, length: int) -> RangeResult:
        """Read up to ``length`` bytes (capped) from ``reference`` starting at ``offset``.

        Raises:
            ValueError: Negative offset or non-positive length.
            LocalNotFound: Local file vanished after validation.
            IoError: Local read failure.
            UpstreamRangeFailed: Remote failure or unusable response.
        """

        return self.read(RangeRequest(reference, offset, length))

    def read(self, request: RangeRequest) -> RangeResult:
        reference, offset = request.reference, request.offset
        length = effective_length(request.requested_length, self.max_chunk_bytes)

        if isinstance(reference, LocalReference):
            return self._read_local(reference, offset, length)
        if isinstance(reference, RemoteReference):
            return self._read_remote(reference, offset, length)
        raise TypeError(f"Unsupported reference type: {type(reference).__name__}")

    # ------------------------------------------------------------------
    # Local
    # ------------------------------------------------------------------

    def _read_local(self, reference: LocalReference, offset: int, length: int) -> RangeResult:
        path = reference.path
        try:
            total = os.stat(path).st_size
        except FileNotFoundError as exc:
            raise LocalNotFound(f"File not found: {path}", reference=reference.url) from exc
        except OSError as exc:
            raise IoError(f"Cannot stat {path}: {exc}", path=str(path)) from exc

        start, end = clamp_range(offset, length, total)
        if start == end:
            return RangeResult(b"", total, offset, length)

        try:
            with open(path, "rb") as handle:
                handle.seek(start)
                data = handle.read(end - start)
        except FileNotFoundError as exc:
            raise LocalNotFound(f"File not found: {path}", reference=reference.url) from exc
        except OSError as exc:
            raise IoError(f"Cannot read {path}: {exc}", path=str(path)) from exc

        if len(data) != end - start:
            raise IoError(
                f"Short read from {path}: expected {end - start} bytes, got {len(data)}",
                path=str(path),
            )
        return RangeResult(data, total, offset, length)

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    def _client_or_raise(self) -> httpx.Client:
        if self._client is None:
            raise UpstreamRangeFailed("No HTTP client configured for remote documents")
        return self._client

    def _approve_redirect(self, target: str) -> str:
        approved = self._validator.validate(target)
        if not isinstance(approved, RemoteReference):
            raise OriginNotAllowed(f"Redirect to non-remote target: {target}", reference=target)
        return approved.url

    def _read_remote(self, reference: RemoteReference, offset: int, length: int) -> RangeResult:
        client = self._client_or_raise()
        url = reference.url
        headers = {"Range": f"bytes={offset}-{offset + length - 1}"}

        with open_audited_stream(
            client,
            url,
            gate=self._approve_redirect,
            headers=headers,
            max_hops=self.max_redirects,
        ) as response:
            status = response.status_code
            if status == 206:
                return self._consume_partial(response, url, offset, length)
            if status == 200:
                return self._consume_full(response, offset, length)
            if status == 416:
                match = _UNSATISFIED_RANGE_RE.match(response.headers.get("Content-Range", ""))
                if match and offset >= int(match.group(1)):
                    return RangeResult(b"", int(match.group(1)), offset, length)
            raise UpstreamRangeFailed(
                f"Range request failed: {status} {response.reason_phrase}",
                url=url,
                status=status,
            )

    def _consume_partial(
        self, response: httpx.Response, url: str, offset: int, length: int
    ) -> RangeResult:
        content_range = response.headers.get("Content-Range")
        parsed = parse_content_range(content_range)
        total: Optional[int] = None
        if parsed is not None:
            first, _last, total = parsed
            if first != offset:
                raise UpstreamRangeFailed(
                    f"Origin returned range starting at {first}, expected {offset}",
                    url=url,
                    status=206,
                    details={"content_range": content_range},
                )
        else:
            LOGGER.debug("206 without usable Content-Range from %s: %r", url, content_range)

        data = response.read()[:length]
        return RangeResult(data, total, offset, length)

    def _consume_full(self, response: httpx.Response, offset: int, length: int) -> RangeResult:
        # Origin ignored Range: slice the full body exactly like a local file.
        wanted = offset + length
        buffer = bytearray()
        exhausted = True
        for chunk in response.iter_bytes():
            buffer.extend(chunk)
            if len(buffer) > wanted:
                exhausted = False
                break

        total: Optional[int]
        if exhausted:
            total = len(buffer)
        else:
            declared = response.headers.get("Content-Length")
            total = int(declared) if declared and declared.isdigit() else None

        if total is None:
            start = min(offset, len(buffer))
            return RangeResult(bytes(buffer[start : start + length]), None, offset, length)
        start, end = clamp_range(offset, length, total)
        return RangeResult(bytes(buffer[start:end]), total, offset, length)
