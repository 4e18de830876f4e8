"""Chunk message codec.

A :class:`ChunkMessage` is what one ``read_pdf_bytes`` call returns. On the
wire it is a JSON object::

    {"url": ..., "bytes": <base64>, "offset": int, "byteCount": int,
     "totalBytes": int, "hasMore": bool}

``totalBytes`` is ``0`` when the source did not reveal the document size;
consumers must then rely on ``hasMore`` alone.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import TransportDecodeError
from .range_reader import RangeResult

__all__ = ["ChunkMessage", "WireChunk", "encode_chunk", "to_wire", "from_wire"]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkMessage:
    url: str
    payload: bytes
    offset: int
    byte_count: int
    total_bytes: int
    has_more: bool

    @property
    def total_known(self) -> bool:
        return self.total_bytes > 0


class WireChunk(BaseModel):
    """Strict schema for the JSON form of a chunk message."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore", populate_by_name=True, strict=True, frozen=True
    )

    url: str
    bytes_b64: str = Field(alias="bytes")
    offset: int = Field(ge=0)
    byte_count: int = Field(alias="byteCount", ge=0)
    total_bytes: int = Field(alias="totalBytes", ge=0)
    has_more: bool = Field(alias="hasMore")


def encode_chunk(url: str, result: RangeResult) -> ChunkMessage:
    """Build the message for ``result``.

    With a known total, ``has_more`` is ``offset + byte_count < total``. With an
    unknown total, a full-length read implies more may follow and a short or
    empty read marks the end.
    """

    byte_count = len(result.data)
    if result.total_size is not None:
        total = result.total_size
        has_more = result.offset + byte_count < total
    else:
        total = 0
        has_more = byte_count > 0 and byte_count == result.requested_length
    return ChunkMessage(
        url=url,
        payload=result.data,
        offset=result.offset,
        byte_count=byte_count,
        total_bytes=total,
        has_more=has_more,
    )


def to_wire(message: ChunkMessage) -> Dict[str, Any]:
    return {
        "url": message.url,
        "bytes": base64.b64encode(message.payload).decode("ascii"),
        "offset": message.offset,
        "byteCount": message.byte_count,
        "totalBytes": message.total_bytes,
        "hasMore": message.has_more,
    }


def from_wire(data: Mapping[str, Any]) -> ChunkMessage:
    """Parse and check a wire chunk.

    Raises:
        TransportDecodeError: Missing/mistyped fields, bad base64, or a payload
            whose length disagrees with ``byteCount``.
    """

    if not isinstance(data, Mapping):
        raise TransportDecodeError(f"Chunk message must be an object, got {type(data).__name__}")
    try:
        wire = WireChunk.model_validate(dict(data))
    except ValidationError as exc:
        raise TransportDecodeError(f"Malformed chunk message: {exc}") from exc

    try:
        payload = base64.b64decode(wire.bytes_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise TransportDecodeError(f"Chunk payload is not valid base64: {exc}") from exc

    if len(payload) != wire.byte_count:
        raise TransportDecodeError(
            f"byteCount {wire.byte_count} does not match payload length {len(payload)}"
        )
    return ChunkMessage(
        url=wire.url,
        payload=payload,
        offset=wire.offset,
        byte_count=wire.byte_count,
        total_bytes=wire.total_bytes,
        has_more=wire.has_more,
    )
