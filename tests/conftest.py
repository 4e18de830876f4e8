# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {
#       "id": "document-bytes",
#       "name": "document_bytes",
#       "anchor": "function-document-bytes",
#       "kind": "function"
#     },
#     {
#       "id": "local-document",
#       "name": "local_document",
#       "anchor": "function-local-document",
#       "kind": "function"
#     },
#     {
#       "id": "make-context",
#       "name": "make_context",
#       "anchor": "function-make-context",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Adds ``src`` to ``sys.path`` and provides shared fixtures: deterministic
document bytes, registered local documents, an in-memory HTTP origin that
honours (or ignores) ``Range`` headers, and tool contexts wired to both.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import httpx
import pytest

# --- Globals ---

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from PdfInsight.Transport.config.models import AccessConfig, PdfInsightConfig  # noqa: E402
from PdfInsight.Transport.http import build_http_client  # noqa: E402
from PdfInsight.Transport.tools import ToolContext  # noqa: E402
from support import RangeOrigin, make_bytes  # noqa: E402

# --- Fixtures ---


@pytest.fixture
def document_bytes() -> bytes:
    return make_bytes(1_000_000)


@pytest.fixture
def local_document(tmp_path: Path, document_bytes: bytes) -> Path:
    path = tmp_path / "docs" / "paper.pdf"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(document_bytes)
    return path.resolve()


@pytest.fixture
def make_context() -> Iterator[Callable[..., ToolContext]]:
    """Build a ToolContext over a fake origin; closes every client afterwards."""

    created: List[ToolContext] = []

    def _factory(
        origin: Optional[RangeOrigin] = None,
        *,
        local_files: Optional[List[str]] = None,
        local_dirs: Optional[List[str]] = None,
        **config_fields,
    ) -> ToolContext:
        config = PdfInsightConfig(
            access=AccessConfig(
                local_files=local_files or [],
                local_dirs=local_dirs or [],
            ),
            **config_fields,
        )
        handler = origin or RangeOrigin({})
        client = build_http_client(config.http, transport=httpx.MockTransport(handler))
        ctx = ToolContext.from_config(config, client=client)
        created.append(ctx)
        return ctx

    yield _factory
    for ctx in created:
        ctx.close()
