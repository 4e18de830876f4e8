# === NAVMAP v1 ===
# {
#   "module": "PdfInsight.Transport.urls",
#   "purpose": "URL helpers: file URLs, arXiv rewriting, canonicalization and origins",
#   "sections": [
#     {
#       "id": "is-file-url",
#       "name": "is_file_url",
#       "anchor": "function-is-file-url",
#       "kind": "function"
#     },
#     {
#       "id": "normalize-arxiv-url",
#       "name": "normalize_arxiv_url",
#       "anchor": "function-normalize-arxiv-url",
#       "kind": "function"
#     },
#     {
#       "id": "canonicalize",
#       "name": "canonicalize",
#       "anchor": "function-canonicalize",
#       "kind": "function"
#     },
#     {
#       "id": "origin-of",
#       "name": "origin_of",
#       "anchor": "function-origin-of",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""URL helpers shared by the access validator and the range reader.

Responsibilities
----------------
- Convert between ``file://`` URLs and filesystem paths.
- Rewrite arXiv abstract-page URLs into their direct-PDF form so that every
  spelling of the same paper yields one canonical URL.
- Normalise remote URLs (scheme/host casing, default ports, dot segments,
  fragments) via ``url_normalize`` before they reach the allow-list.

Canonicalization Rules
----------------------
1. ``/abs/`` path segments on arXiv hosts become ``/pdf/``.
2. A trailing ``.pdf`` on arXiv URLs is dropped.
3. Scheme and host are lowercased; default ports are dropped.
4. Fragments are removed (never sent to the origin).
5. Query strings are preserved in their original order.

Example:
    >>> canonicalize("https://arxiv.org/abs/1706.03762")
    'https://arxiv.org/pdf/1706.03762'
    >>> canonicalize("HTTPS://ArXiv.org/pdf/1706.03762.pdf#page=2")
    'https://arxiv.org/pdf/1706.03762'
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Union
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from url_normalize import url_normalize

from .errors import InvalidUrl

__all__ = [
    "FILE_SCHEME_PREFIX",
    "ARXIV_HOSTS",
    "is_file_url",
    "file_url_to_path",
    "path_to_file_url",
    "is_arxiv_url",
    "normalize_arxiv_url",
    "canonicalize",
    "origin_of",
]

FILE_SCHEME_PREFIX = "file://"
ARXIV_HOSTS = frozenset({"arxiv.org", "www.arxiv.org", "export.arxiv.org"})
REMOTE_SCHEMES = ("http", "https")

_PDF_SUFFIX_RE = re.compile(r"\.pdf$", re.IGNORECASE)


def is_file_url(url: str) -> bool:
    return url.startswith(FILE_SCHEME_PREFIX)


def file_url_to_path(url: str) -> str:
    """Decode a ``file://`` URL into a filesystem path string."""

    return unquote(url[len(FILE_SCHEME_PREFIX) :])


def path_to_file_url(path: Union[str, os.PathLike]) -> str:
    """Encode an absolute path as a ``file://`` URL (spaces and unicode escaped)."""

    absolute = os.path.abspath(os.fspath(path))
    if os.sep != "/":
        absolute = Path(absolute).as_posix()
    return FILE_SCHEME_PREFIX + quote(absolute, safe="/:")


def is_arxiv_url(url: str) -> bool:
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return False
    return bool(host) and host.lower() in ARXIV_HOSTS


def normalize_arxiv_url(url: str) -> str:
    """Rewrite an arXiv URL to the direct-PDF form without a ``.pdf`` suffix.

    Non-arXiv URLs are returned unchanged.
    """

    if not is_arxiv_url(url):
        return url
    parts = urlsplit(url)
    path = parts.path.replace("/abs/", "/pdf/", 1)
    path = _PDF_SUFFIX_RE.sub("", path)
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def _require_remote(url: str) -> None:
    try:
        parts = urlsplit(url)
        host = parts.hostname
        parts.port
    except ValueError as exc:
        raise InvalidUrl(f"Invalid URL: {url}", reference=url) from exc
    if parts.scheme.lower() not in REMOTE_SCHEMES or not host:
        raise InvalidUrl(f"Invalid URL: {url}", reference=url)


def _strip_fragment(url: str) -> str:
    parts = urlsplit(url)
    if not parts.fragment:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


def canonicalize(url: str) -> str:
    """Return the canonical form of a remote http(s) URL.

    Raises:
        InvalidUrl: If ``url`` is not an absolute http(s) URL with a host.
    """

    text = url.strip()
    _require_remote(text)
    try:
        normalized = url_normalize(text, default_scheme="https")
    except (ValueError, UnicodeError) as exc:
        raise InvalidUrl(f"Invalid URL: {url}", reference=url) from exc
    if not normalized:
        raise InvalidUrl(f"Invalid URL: {url}", reference=url)
    return _strip_fragment(normalize_arxiv_url(normalized))


def origin_of(url: str) -> str:
    """Return ``scheme://host`` (port included when explicit) for ``url``."""

    parts = urlsplit(url)
    host = parts.hostname or ""
    origin = f"{parts.scheme.lower()}://{host.lower()}"
    if parts.port is not None:
        origin = f"{origin}:{parts.port}"
    return origin
