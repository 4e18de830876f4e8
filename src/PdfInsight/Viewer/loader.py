"""Chunk reassembly: turn a sequence of bounded chunk replies into one buffer.

The loop is strictly sequential: each request's offset is the previous
offset advanced by the bytes actually received, never by the size asked for.
``totalBytes == 0`` on the wire means the size is unknown, so completion is
decided by ``hasMore`` alone.

Example:
    >>> transport = InProcessTransport(ToolContext.from_config())   # doctest: +SKIP
    >>> data = fetch_all(transport, "https://arxiv.org/pdf/1706.03762")  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..Transport.errors import LoadCancelled, TransportDecodeError
from .transport import ChunkTransport

__all__ = ["CHUNK_SIZE", "ReassemblyState", "ProgressCallback", "fetch_all"]

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 500 * 1024

ProgressCallback = Callable[[int, int], None]


@dataclass
class ReassemblyState:
    received: bytearray = field(default_factory=bytearray)
    next_offset: int = 0
    total_bytes: Optional[int] = None
    chunks: int = 0

    def discard(self) -> None:
        self.received = bytearray()
        self.next_offset = 0
        self.total_bytes = None


def _check_cancel(cancel: Optional[threading.Event], state: ReassemblyState, url: str) -> None:
    if cancel is not None and cancel.is_set():
        received = state.next_offset
        state.discard()
        LOGGER.info("Load of %s cancelled after %d bytes", url, received)
        raise LoadCancelled(f"Load of {url} cancelled")


def fetch_all(
    transport: ChunkTransport,
    url: str,
    on_progress: Optional[ProgressCallback] = None,
    *,
    chunk_size: int = CHUNK_SIZE,
    cancel: Optional[threading.Event] = None,
) -> bytes:
    """Fetch every byte of ``url`` through ``transport``.

    Args:
        transport: Chunk source.
        url: Document reference passed to every request.
        on_progress: Called with ``(0, 1)`` before the first request and with
            ``(received, total)`` after each chunk; ``total`` is 0 when unknown.
        chunk_size: Bytes requested per round trip.
        cancel: Checked before every request and once more after the last
            chunk; when set, no further requests are issued and
            :class:`LoadCancelled` is raised.

    Raises:
        TransportDecodeError: Inconsistent chunk sequence.
        LoadCancelled: ``cancel`` was set before completion.
        Any error raised by ``transport``, unchanged.
    """

    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    state = ReassemblyState()
    if on_progress is not None:
        on_progress(0, 1)

    has_more = True
    while has_more:
        _check_cancel(cancel, state, url)
        chunk = transport.read_chunk(url, state.next_offset, chunk_size)

        if chunk.offset != state.next_offset:
            raise TransportDecodeError(
                f"Chunk offset {chunk.offset} does not match expected offset {state.next_offset}"
            )
        if chunk.has_more and chunk.byte_count == 0:
            raise TransportDecodeError(f"Empty chunk at offset {chunk.offset} claims more data")

        state.received.extend(chunk.payload)
        state.next_offset += chunk.byte_count
        state.chunks += 1
        state.total_bytes = chunk.total_bytes if chunk.total_known else None
        has_more = chunk.has_more

        if on_progress is not None:
            on_progress(state.next_offset, state.total_bytes or 0)

    _check_cancel(cancel, state, url)
    if state.total_bytes is not None and len(state.received) != state.total_bytes:
        raise TransportDecodeError(
            f"Reassembled {len(state.received)} bytes but origin reported {state.total_bytes}"
        )

    LOGGER.debug(
        "Reassembled %s",
        url,
        extra={"extra_fields": {"bytes": len(state.received), "chunks": state.chunks}},
    )
    return bytes(state.received)
