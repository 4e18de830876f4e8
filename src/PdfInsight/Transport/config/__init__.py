"""
PdfInsight Configuration Package

Public API for loading, validating, and introspecting configuration.

Example:
    from PdfInsight.Transport.config import load_config

    config = load_config(
        path="pdfinsight.yaml",
        cli_overrides={"transport": {"max_chunk_bytes": 262144}},
    )
    config.config_hash()
"""

from .loader import (
    export_config_schema,
    load_config,
    validate_config_file,
)
from .models import (
    DEFAULT_PDF,
    DEFAULT_REMOTE_ORIGINS,
    MAX_CHUNK_BYTES,
    AccessConfig,
    HttpClientConfig,
    LoggingConfig,
    PdfInsightConfig,
    TransportConfig,
    ViewerConfig,
)

__all__ = [
    "DEFAULT_PDF",
    "DEFAULT_REMOTE_ORIGINS",
    "MAX_CHUNK_BYTES",
    # Models
    "PdfInsightConfig",
    "AccessConfig",
    "TransportConfig",
    "HttpClientConfig",
    "ViewerConfig",
    "LoggingConfig",
    # Loading/validation
    "load_config",
    "validate_config_file",
    "export_config_schema",
]
