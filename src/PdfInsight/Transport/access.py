# === NAVMAP v1 ===
# {
#   "module": "PdfInsight.Transport.access",
#   "purpose": "Allow-list construction and validation of document references",
#   "sections": [
#     {
#       "id": "localreference",
#       "name": "LocalReference",
#       "anchor": "class-localreference",
#       "kind": "class"
#     },
#     {
#       "id": "remotereference",
#       "name": "RemoteReference",
#       "anchor": "class-remotereference",
#       "kind": "class"
#     },
#     {
#       "id": "allowlist",
#       "name": "AllowList",
#       "anchor": "class-allowlist",
#       "kind": "class"
#     },
#     {
#       "id": "origin-allowed",
#       "name": "origin_allowed",
#       "anchor": "function-origin-allowed",
#       "kind": "function"
#     },
#     {
#       "id": "accessvalidator",
#       "name": "AccessValidator",
#       "anchor": "class-accessvalidator",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Access validation for document references.

Every byte served by the range read service originates from a reference
that passed :meth:`AccessValidator.validate`. The allow-list is assembled
once at startup from configuration and is immutable afterwards.

Local references
    ``file://`` URLs and absolute/relative filesystem paths. They must resolve
    to a path registered at startup (explicit files plus ``*.pdf`` files found
    directly inside configured directories) and must still exist.

Remote references
    http(s) URLs. The reference is canonicalized first (arXiv rewriting,
    ``url_normalize``) and its origin must match an allow-list entry, either
    exactly or as a prefix when the entry ends in ``/`` or ``.``. Prefix
    matching is therefore anchored at a host-label boundary:
    ``https://arxiv.org`` does not admit ``https://arxiv.org.evil.example``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Iterable, Tuple, Union

from .config.models import AccessConfig
from .errors import InvalidUrl, LocalNotAllowed, LocalNotFound, OriginNotAllowed
from .urls import canonicalize, file_url_to_path, is_file_url, origin_of, path_to_file_url

__all__ = [
    "LocalReference",
    "RemoteReference",
    "DocumentReference",
    "AllowList",
    "origin_allowed",
    "AccessValidator",
]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalReference:
    """A validated reference to a registered local document."""

    kind: ClassVar[str] = "local"

    path: Path

    @property
    def url(self) -> str:
        return path_to_file_url(self.path)


@dataclass(frozen=True)
class RemoteReference:
    """A validated, canonical reference to a document on an allowed origin."""

    kind: ClassVar[str] = "remote"

    url: str
    origin: str


DocumentReference = Union[LocalReference, RemoteReference]


def _normalize_origin_entry(entry: str) -> str:
    text = entry.strip().lower()
    head, sep, rest = text.partition("://")
    if sep and rest.rstrip("/"):
        # "https://arxiv.org/" means the origin itself, not a prefix
        return f"{head}://{rest.rstrip('/')}"
    return text


def origin_allowed(origin: str, entries: Iterable[str]) -> bool:
    """Return True when ``origin`` equals an entry or extends a boundary-ending prefix."""

    candidate = origin.lower()
    for entry in entries:
        if candidate == entry:
            return True
        if entry.endswith(("/", ".")) and candidate.startswith(entry):
            return True
    return False


def _resolve(path: Union[str, os.PathLike]) -> Path:
    return Path(path).expanduser().resolve()


@dataclass(frozen=True)
class AllowList:
    """Immutable set of local paths and remote origin entries."""

    local_paths: Tuple[Path, ...] = ()
    remote_origins: Tuple[str, ...] = ()

    def allows_path(self, path: Path) -> bool:
        return path in self.local_paths

    def allows_origin(self, origin: str) -> bool:
        return origin_allowed(origin, self.remote_origins)

    @classmethod
    def from_config(cls, config: AccessConfig) -> "AllowList":
        """Register configured files and scan configured directories.

        Missing files and directories are skipped with a warning; registration
        never fails startup.
        """

        registered: list[Path] = []

        def _add(path: Path) -> None:
            if path not in registered:
                registered.append(path)

        for raw in config.local_files:
            path = _resolve(file_url_to_path(raw) if is_file_url(raw) else raw)
            if path.is_file():
                _add(path)
                LOGGER.info("Registered local document %s", path)
            else:
                LOGGER.warning("Skipping missing local document %s", path)

        for raw in config.local_dirs:
            directory = _resolve(raw)
            if not directory.is_dir():
                LOGGER.warning("Skipping missing local directory %s", directory)
                continue
            found = 0
            for entry in sorted(directory.iterdir()):
                if entry.is_file() and entry.name.lower().endswith(config.document_suffix):
                    _add(entry.resolve())
                    found += 1
            LOGGER.info("Registered %d local documents from %s", found, directory)

        origins: list[str] = []
        for entry in config.remote_origins:
            normalized = _normalize_origin_entry(entry)
            if normalized not in origins:
                origins.append(normalized)

        return cls(local_paths=tuple(registered), remote_origins=tuple(origins))


class AccessValidator:
    """Decide whether a document reference may be served."""

    def __init__(self, allow_list: AllowList) -> None:
        self.allow_list = allow_list

    @classmethod
    def from_config(cls, config: AccessConfig) -> "AccessValidator":
        return cls(AllowList.from_config(config))

    @staticmethod
    def _looks_like_path(reference: str) -> bool:
        if "://" in reference:
            return False
        return reference.startswith(("/", "./", "../", "~")) or os.path.isabs(reference)

    def validate(self, reference: str) -> DocumentReference:
        """Validate ``reference`` and return its typed, canonical form.

        Raises:
            InvalidUrl: Remote reference that does not parse as an http(s) URL.
            OriginNotAllowed: Remote origin absent from the allow-list.
            LocalNotAllowed: Local path never registered.
            LocalNotFound: Registered local path that no longer exists.
        """

        text = (reference or "").strip()
        if not text:
            raise InvalidUrl("Invalid URL: empty reference", reference=reference)

        if is_file_url(text) or self._looks_like_path(text):
            raw_path = file_url_to_path(text) if is_file_url(text) else text
            path = _resolve(raw_path)
            if not self.allow_list.allows_path(path):
                raise LocalNotAllowed(f"Local file not in allowed list: {path}", reference=text)
            if not path.exists():
                raise LocalNotFound(f"File not found: {path}", reference=text)
            return LocalReference(path)

        url = canonicalize(text)
        origin = origin_of(url)
        if not self.allow_list.allows_origin(origin):
            raise OriginNotAllowed(f"Origin not allowed: {origin}", reference=text, origin=origin)
        return RemoteReference(url=url, origin=origin)

    def local_documents(self) -> list[LocalReference]:
        return [LocalReference(path) for path in self.allow_list.local_paths]
