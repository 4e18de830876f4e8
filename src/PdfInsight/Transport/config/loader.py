# === NAVMAP v1 ===
# {
#   "module": "PdfInsight.Transport.config.loader",
#   "purpose": "Configuration Loading with File/Env/CLI Precedence.",
#   "sections": [
#     {
#       "id": "file-layer",
#       "name": "_file_layer",
#       "anchor": "function-file-layer",
#       "kind": "function"
#     },
#     {
#       "id": "env-layer",
#       "name": "_env_layer",
#       "anchor": "function-env-layer",
#       "kind": "function"
#     },
#     {
#       "id": "merge-legacy-local-paths",
#       "name": "_merge_legacy_local_paths",
#       "anchor": "function-merge-legacy-local-paths",
#       "kind": "function"
#     },
#     {
#       "id": "load-config",
#       "name": "load_config",
#       "anchor": "function-load-config",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Configuration Loading with File/Env/CLI Precedence

Implements three-level config composition:
1. **File level** (YAML/JSON): base configuration
2. **Environment level**: PDFI_* prefixed variables override file
3. **CLI level**: programmatic overrides win

Environment variables use double-underscore notation:
  PDFI_TRANSPORT__MAX_CHUNK_BYTES=65536  →  transport.max_chunk_bytes=65536
  PDFI_ACCESS__REMOTE_ORIGINS='["https://arxiv.org"]'  →  access.remote_origins=[...]

The comma-separated ``PDF_LOCAL_FILES`` and ``PDF_LOCAL_DIRS`` variables are
also honoured; their entries are appended to ``access.local_files`` and
``access.local_dirs``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .models import PdfInsightConfig

_LOGGER = logging.getLogger(__name__)

LEGACY_LOCAL_FILES_ENV = "PDF_LOCAL_FILES"
LEGACY_LOCAL_DIRS_ENV = "PDF_LOCAL_DIRS"

_CONFIG_SUFFIXES = (".yaml", ".yml", ".json")

# ============================================================================
# Layers
# ============================================================================


def _file_layer(path: str) -> dict[str, Any]:
    """Parse a YAML or JSON config file into a mapping.

    JSON documents go through the YAML parser as well.

    Raises:
        ValueError: Missing, unreadable or malformed file, or a top level
            that is not a mapping.
    """
    p = Path(path)
    if p.suffix.lower() not in _CONFIG_SUFFIXES:
        raise ValueError(f"Unsupported file format: {p.suffix}. Use .yaml or .json")
    if not p.is_file():
        raise ValueError(f"Config file not found: {path}")

    try:
        loaded = yaml.safe_load(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid config syntax in {path}: {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(loaded).__name__}")
    return loaded


def _env_value(raw: str) -> Any:
    if not raw:
        return raw
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _env_layer(env_prefix: str) -> dict[str, Any]:
    """Collect ``<prefix>SECTION__FIELD`` variables into a nested mapping.

    Values are parsed as YAML scalars or flow collections, so ``false``,
    ``1024`` and ``["https://osf.io"]`` arrive typed.
    """
    layer: dict[str, Any] = {}
    for env_key, raw in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue
        *parents, leaf = env_key[len(env_prefix) :].lower().split("__")
        section = layer
        for name in parents:
            if not isinstance(section.get(name), dict):
                section[name] = {}
            section = section[name]
        section[leaf] = _env_value(raw)
        _LOGGER.debug("Environment override: %s", env_key)
    return layer


def _split_paths(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _merge_legacy_local_paths(data: dict[str, Any]) -> dict[str, Any]:
    """Append ``PDF_LOCAL_FILES`` / ``PDF_LOCAL_DIRS`` entries to the access section."""
    for env_name, key in ((LEGACY_LOCAL_FILES_ENV, "local_files"), (LEGACY_LOCAL_DIRS_ENV, "local_dirs")):
        extra = _split_paths(os.environ.get(env_name))
        if extra:
            access = data.setdefault("access", {})
            access[key] = list(access.get(key) or []) + extra
    return data


def _deep_merge(base: dict[str, Any], overlay: Mapping[str, Any] | None) -> dict[str, Any]:
    """Overlay ``overlay`` onto ``base`` section by section; scalars and lists are replaced."""
    for key, value in (overlay or {}).items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = dict(value) if isinstance(value, Mapping) else value
    return base


# ============================================================================
# Public API
# ============================================================================


def load_config(
    path: str | None = None,
    env_prefix: str = "PDFI_",
    cli_overrides: Mapping[str, Any] | None = None,
) -> PdfInsightConfig:
    """
    Load PdfInsightConfig from file, environment, and CLI with proper precedence.

    **Precedence:** file < environment < CLI

    Args:
        path: Path to YAML/JSON config file (optional)
        env_prefix: Environment variable prefix (default: PDFI_)
        cli_overrides: CLI overrides dict (optional)

    Returns:
        Validated PdfInsightConfig instance

    Raises:
        ValueError: If config is invalid or file cannot be read
    """
    data: dict[str, Any] = {}

    if path:
        data = _file_layer(path)
        _LOGGER.info("Loaded config from %s", path)

    _deep_merge(data, _env_layer(env_prefix))
    _merge_legacy_local_paths(data)
    _deep_merge(data, cli_overrides)

    try:
        config = PdfInsightConfig.model_validate(data)
    except ValueError as e:
        _LOGGER.error("Configuration validation failed: %s", e)
        raise
    _LOGGER.debug("Configuration validated. Config hash: %s...", config.config_hash()[:8])
    return config


def validate_config_file(path: str) -> bool:
    """
    Validate a config file (with the current environment applied).

    Raises:
        ValueError: If invalid
    """
    load_config(path=path)
    return True


def export_config_schema() -> dict[str, Any]:
    """Export JSON Schema for PdfInsightConfig."""
    return PdfInsightConfig.model_json_schema()
