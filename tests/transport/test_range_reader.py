"""Tests for the range read service.

Tests cover:
- Per-request byte cap and the two-chunk walk over a 1,000,000 byte file
- Local and remote reads agreeing for every (offset, length)
- Origins that honour Range, ignore it, hide the total, or omit Content-Range
- 416 tails, upstream failures, audited redirects
"""

from pathlib import Path

import httpx
import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from PdfInsight.Transport.access import AccessValidator, AllowList, LocalReference
from PdfInsight.Transport.config.models import MAX_CHUNK_BYTES
from PdfInsight.Transport.errors import (
    LocalNotFound,
    OriginNotAllowed,
    UpstreamRangeFailed,
)
from PdfInsight.Transport.http import build_http_client
from PdfInsight.Transport.range_reader import (
    RangeReadService,
    clamp_range,
    effective_length,
    parse_content_range,
)
from PdfInsight.Transport.tools import read_pdf_bytes
from support import ORIGIN_URL, RangeOrigin, make_bytes

SMALL_DOC = make_bytes(3000)


@pytest.fixture(scope="module")
def small_local(tmp_path_factory) -> Path:
    path = tmp_path_factory.mktemp("range") / "small.pdf"
    path.write_bytes(SMALL_DOC)
    return path.resolve()


def _service(origin: RangeOrigin, local: Path = None, **kwargs) -> RangeReadService:
    allow_list = AllowList(
        local_paths=(local,) if local else (),
        remote_origins=("https://arxiv.org",),
    )
    client = build_http_client(transport=httpx.MockTransport(origin))
    return RangeReadService(AccessValidator(allow_list), client, **kwargs)


class TestHelpers:
    def test_effective_length_caps(self):
        assert effective_length(600_000) == MAX_CHUNK_BYTES
        assert effective_length(10) == 10

    def test_effective_length_rejects_zero(self):
        with pytest.raises(ValueError):
            effective_length(0)

    @pytest.mark.parametrize(
        "offset,length,total,expected",
        [(0, 10, 100, (0, 10)), (95, 10, 100, (95, 100)), (150, 10, 100, (100, 100)), (0, 5, 0, (0, 0))],
    )
    def test_clamp_range(self, offset, length, total, expected):
        assert clamp_range(offset, length, total) == expected

    def test_parse_content_range(self):
        assert parse_content_range("bytes 0-99/1000") == (0, 99, 1000)
        assert parse_content_range("bytes 10-19/*") == (10, 19, None)
        assert parse_content_range("items 0-1/2") is None
        assert parse_content_range(None) is None


class TestLocalReads:
    def test_two_chunk_walk(self, make_context, local_document: Path):
        ctx = make_context(local_files=[str(local_document)])

        first = read_pdf_bytes(ctx, str(local_document), 0, 600_000)["structuredContent"]
        assert first["byteCount"] == 524_288
        assert first["totalBytes"] == 1_000_000
        assert first["hasMore"] is True

        second = read_pdf_bytes(ctx, str(local_document), 524_288, 600_000)["structuredContent"]
        assert second["offset"] == 524_288
        assert second["byteCount"] == 475_712
        assert second["hasMore"] is False

    def test_offset_past_end_is_empty(self, make_context, local_document: Path):
        ctx = make_context(local_files=[str(local_document)])
        chunk = read_pdf_bytes(ctx, str(local_document), 2_000_000, 100)["structuredContent"]
        assert chunk["byteCount"] == 0
        assert chunk["bytes"] == ""
        assert chunk["totalBytes"] == 1_000_000
        assert chunk["hasMore"] is False

    def test_file_removed_after_validation(self, tmp_path: Path):
        path = tmp_path / "gone.pdf"
        path.write_bytes(b"%PDF")
        service = _service(RangeOrigin({}), path)
        path.unlink()
        with pytest.raises(LocalNotFound):
            service.read_range(LocalReference(path), 0, 10)

    def test_negative_offset_rejected(self, small_local: Path):
        service = _service(RangeOrigin({}), small_local)
        with pytest.raises(ValueError):
            service.read_range(LocalReference(small_local), -1, 10)

    @settings(max_examples=40, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(chunk=st.integers(min_value=64, max_value=4000))
    def test_sequential_reads_reassemble_file(self, small_local: Path, chunk: int):
        service = _service(RangeOrigin({}), small_local)
        reference = LocalReference(small_local)
        pieces, offset = [], 0
        while True:
            result = service.read_range(reference, offset, chunk)
            if not result.data:
                break
            pieces.append(result.data)
            offset += len(result.data)
        assert b"".join(pieces) == SMALL_DOC


class TestLocalRemoteAgreement:
    @settings(max_examples=60, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(
        offset=st.integers(min_value=0, max_value=3500),
        length=st.integers(min_value=1, max_value=4000),
        mode=st.sampled_from(["range", "full"]),
    )
    def test_same_bytes_and_total(self, small_local: Path, offset: int, length: int, mode: str):
        origin = RangeOrigin({ORIGIN_URL: SMALL_DOC}, mode=mode)
        service = _service(origin, small_local)
        local = service.read_range(LocalReference(small_local), offset, length)
        remote = service.read_range(service._validator.validate(ORIGIN_URL), offset, length)
        assert remote.data == local.data == SMALL_DOC[offset : offset + length]
        assert remote.total_size == local.total_size == len(SMALL_DOC)


class TestRemoteReads:
    def _read(self, origin: RangeOrigin, offset: int, length: int, **kwargs):
        service = _service(origin, **kwargs)
        return service.read_range(service._validator.validate(ORIGIN_URL), offset, length)

    def test_range_request_header(self):
        origin = RangeOrigin({ORIGIN_URL: SMALL_DOC})
        self._read(origin, 100, 50)
        request = origin.requests[0]
        assert request.headers["Range"] == "bytes=100-149"
        assert request.headers["Accept-Encoding"] == "identity"

    def test_partial_content(self):
        result = self._read(RangeOrigin({ORIGIN_URL: SMALL_DOC}), 100, 50)
        assert result.data == SMALL_DOC[100:150]
        assert result.total_size == 3000

    def test_request_is_capped_before_sending(self):
        origin = RangeOrigin({ORIGIN_URL: make_bytes(600_000)})
        result = self._read(origin, 0, 600_000)
        assert origin.requests[0].headers["Range"] == f"bytes=0-{MAX_CHUNK_BYTES - 1}"
        assert len(result.data) == MAX_CHUNK_BYTES

    def test_full_body_is_sliced(self):
        result = self._read(RangeOrigin({ORIGIN_URL: SMALL_DOC}, mode="full"), 2990, 50)
        assert result.data == SMALL_DOC[2990:]
        assert result.total_size == 3000

    def test_unknown_total_from_star(self):
        result = self._read(RangeOrigin({ORIGIN_URL: SMALL_DOC}, mode="star"), 0, 100)
        assert result.data == SMALL_DOC[:100]
        assert result.total_size is None

    def test_missing_content_range(self):
        result = self._read(RangeOrigin({ORIGIN_URL: SMALL_DOC}, mode="bare"), 10, 10)
        assert result.data == SMALL_DOC[10:20]
        assert result.total_size is None

    def test_unsatisfiable_range_is_empty_tail(self):
        result = self._read(RangeOrigin({ORIGIN_URL: SMALL_DOC}), 3000, 100)
        assert result.data == b""
        assert result.total_size == 3000

    def test_server_error(self):
        with pytest.raises(UpstreamRangeFailed) as excinfo:
            self._read(RangeOrigin({ORIGIN_URL: SMALL_DOC}, status_override=500), 0, 10)
        assert excinfo.value.status == 500

    def test_not_found(self):
        with pytest.raises(UpstreamRangeFailed) as excinfo:
            self._read(RangeOrigin({}), 0, 10)
        assert excinfo.value.status == 404

    def test_transport_failure(self):
        def _boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        allow_list = AllowList(remote_origins=("https://arxiv.org",))
        client = build_http_client(transport=httpx.MockTransport(_boom))
        service = RangeReadService(AccessValidator(allow_list), client)
        with pytest.raises(UpstreamRangeFailed):
            service.read_range(service._validator.validate(ORIGIN_URL), 0, 10)

    def test_allowed_redirect_followed(self):
        mirror = "https://arxiv.org/pdf/1706.03762v7"
        origin = RangeOrigin({mirror: SMALL_DOC}, redirects={ORIGIN_URL: mirror})
        result = self._read(origin, 0, 10)
        assert result.data == SMALL_DOC[:10]
        assert [str(r.url) for r in origin.requests] == [ORIGIN_URL, mirror]

    def test_redirect_to_foreign_origin_blocked(self):
        origin = RangeOrigin(
            {"https://evil.example/x.pdf": SMALL_DOC},
            redirects={ORIGIN_URL: "https://evil.example/x.pdf"},
        )
        with pytest.raises(OriginNotAllowed):
            self._read(origin, 0, 10)
        assert len(origin.requests) == 1

    def test_redirect_loop_bounded(self):
        other = "https://arxiv.org/pdf/2000.00001"
        origin = RangeOrigin({}, redirects={ORIGIN_URL: other, other: ORIGIN_URL})
        with pytest.raises(UpstreamRangeFailed, match="redirect hops"):
            self._read(origin, 0, 10, max_redirects=3)
        assert len(origin.requests) == 4
