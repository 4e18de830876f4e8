"""
Pydantic v2 Configuration Models for PdfInsight

Provides strict, typed configuration for every subsystem:
- Access allow-lists (remote origin prefixes, local files and directories)
- Range transport limits (server-side chunk cap)
- HTTP client settings for remote origins (timeouts, TLS, redirects)
- Viewer defaults (client chunk size, zoom levels, navigation thresholds)
- Logging
- Top-level PdfInsightConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

from typing import ClassVar, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PDF = "https://arxiv.org/pdf/1706.03762"
MAX_CHUNK_BYTES = 512 * 1024
DEFAULT_REMOTE_ORIGINS = [
    "https://agrirxiv.org",
    "https://arxiv.org",
    "https://chemrxiv.org",
    "https://edarxiv.org",
    "https://engrxiv.org",
    "https://hal.science",
    "https://osf.io",
    "https://psyarxiv.com",
    "https://ssrn.com",
    "https://www.biorxiv.org",
    "https://www.eartharxiv.org",
    "https://www.medrxiv.org",
    "https://www.preprints.org",
    "https://www.researchsquare.com",
    "https://www.sportarxiv.org",
    "https://zenodo.org",
]

# ============================================================================
# Section Models
# ============================================================================


class AccessConfig(BaseModel):
    """Allow-lists consulted by the access validator."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    remote_origins: List[str] = Field(
        default_factory=lambda: list(DEFAULT_REMOTE_ORIGINS),
        description="Allowed remote origin prefixes (scheme://host)",
    )
    local_files: List[str] = Field(
        default_factory=list, description="Explicit local documents to expose"
    )
    local_dirs: List[str] = Field(
        default_factory=list,
        description="Directories scanned (non-recursively) for documents",
    )
    document_suffix: str = Field(
        default=".pdf", description="File suffix used when scanning local_dirs"
    )

    @field_validator("remote_origins")
    @classmethod
    def validate_origins(cls, v: List[str]) -> List[str]:
        cleaned = []
        for origin in v:
            text = origin.strip()
            if not text.startswith(("http://", "https://")):
                raise ValueError(f"Remote origin must start with http:// or https://: {origin!r}")
            if text not in cleaned:
                cleaned.append(text)
        return cleaned

    @field_validator("document_suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        if not v.startswith("."):
            raise ValueError("document_suffix must start with '.'")
        return v.lower()


class TransportConfig(BaseModel):
    """Limits enforced by the range read service."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_chunk_bytes: int = Field(
        default=MAX_CHUNK_BYTES, description="Hard cap on bytes returned per range read"
    )
    max_redirects: int = Field(default=5, description="Maximum audited redirect hops")

    @field_validator("max_chunk_bytes")
    @classmethod
    def validate_chunk(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_chunk_bytes must be > 0")
        if v > MAX_CHUNK_BYTES:
            raise ValueError(f"max_chunk_bytes must be <= {MAX_CHUNK_BYTES}")
        return v

    @field_validator("max_redirects")
    @classmethod
    def validate_redirects(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_redirects must be >= 0")
        return v


class HttpClientConfig(BaseModel):
    """Configuration for the HTTP client used against remote origins."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(default="PdfInsight/2.0", description="User-Agent string")
    timeout_connect_s: float = Field(default=10.0, description="Connection timeout in seconds")
    timeout_read_s: float = Field(default=60.0, description="Read timeout in seconds")
    timeout_write_s: float = Field(default=30.0, description="Write timeout in seconds")
    timeout_pool_s: float = Field(default=10.0, description="Pool acquire timeout in seconds")
    max_connections: int = Field(default=20, description="Connection pool size")
    max_keepalive_connections: int = Field(default=10, description="Keep-alive pool size")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
    trust_env: bool = Field(default=True, description="Honour proxy environment variables")

    @field_validator("timeout_connect_s", "timeout_read_s", "timeout_write_s", "timeout_pool_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("max_connections", "max_keepalive_connections")
    @classmethod
    def validate_pool(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Pool sizes must be > 0")
        return v


class ViewerConfig(BaseModel):
    """Consumer-side defaults."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    chunk_size_bytes: int = Field(default=500 * 1024, description="Bytes requested per round trip")
    default_zoom: float = Field(default=1.0, description="Initial render scale")
    scroll_threshold: float = Field(
        default=50.0, description="Accumulated horizontal wheel delta that flips a page"
    )
    max_context_chars: int = Field(
        default=15000, description="Budget for page text shared as model context"
    )

    @field_validator("chunk_size_bytes", "max_context_chars")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Must be > 0")
        return v

    @field_validator("default_zoom", "scroll_threshold")
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Must be > 0")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Root level for PdfInsight loggers"
    )
    log_dir: Optional[str] = Field(
        default=None, description="Directory for rotating JSON-lines logs (None = console only)"
    )
    max_log_size_mb: int = Field(default=50, description="Rotation threshold")

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return str(v).upper()


# ============================================================================
# Top-Level Configuration
# ============================================================================


class PdfInsightConfig(BaseModel):
    """
    Single source of truth for PdfInsight configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    default_document: str = Field(
        default=DEFAULT_PDF, description="Document shown when display_pdf gets no URL"
    )
    access: AccessConfig = Field(default_factory=AccessConfig, description="Allow-lists")
    transport: TransportConfig = Field(
        default_factory=TransportConfig, description="Range transport limits"
    )
    http: HttpClientConfig = Field(
        default_factory=HttpClientConfig, description="HTTP client configuration"
    )
    viewer: ViewerConfig = Field(default_factory=ViewerConfig, description="Viewer defaults")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
