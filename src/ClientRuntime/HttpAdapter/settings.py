# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.settings",
#   "purpose": "Typed settings for the HTTP client, middleware defaults, and logging.",
#   "sections": [
#     {
#       "id": "httpsettings",
#       "name": "HttpSettings",
#       "anchor": "class-httpsettings",
#       "kind": "class"
#     },
#     {
#       "id": "redirectsettings",
#       "name": "RedirectSettings",
#       "anchor": "class-redirectsettings",
#       "kind": "class"
#     },
#     {
#       "id": "retrysettings",
#       "name": "RetrySettings",
#       "anchor": "class-retrysettings",
#       "kind": "class"
#     },
#     {
#       "id": "adaptersettings",
#       "name": "AdapterSettings",
#       "anchor": "class-adaptersettings",
#       "kind": "class"
#     },
#     {
#       "id": "load-settings",
#       "name": "load_settings",
#       "anchor": "function-load-settings",
#       "kind": "function"
#     },
#     {
#       "id": "get-settings",
#       "name": "get_settings",
#       "anchor": "function-get-settings",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Configuration for the request adapter and its middleware chain.

Settings are grouped into frozen pydantic sections (HTTP client, redirects,
retries, compression, telemetry, logging) aggregated by
:class:`AdapterSettings`, a pydantic-settings model whose fields can be
overridden through ``CLIENTRUNTIME_*`` environment variables using ``__`` as the
nested delimiter (for example ``CLIENTRUNTIME_REDIRECT__MAX_REDIRECT=3``).
YAML files are accepted through :func:`load_settings`.

The adapter reads these values once at construction time to build the default
middleware chain; per-request option objects still override them per call.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

__all__ = [
    "HttpSettings",
    "RedirectSettings",
    "RetrySettings",
    "CompressionSettings",
    "TelemetrySettings",
    "LoggingSettings",
    "AdapterSettings",
    "load_settings",
    "get_settings",
    "reset_settings",
]

MAX_REDIRECT_LIMIT = 20
MAX_RETRY_LIMIT = 10
MAX_RETRY_DELAY_SECONDS = 180.0


class HttpSettings(BaseModel):
    """HTTP client settings for the default ``httpx.AsyncClient``.

    Controls timeout, pool, HTTP/2, TLS verification and proxy trust behavior.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    http2: bool = Field(default=True, description="Enable HTTP/2 support")
    timeout_connect: float = Field(default=5.0, gt=0.0, le=60.0, description="Connect timeout in seconds")
    timeout_read: float = Field(default=100.0, gt=0.0, le=600.0, description="Read timeout in seconds")
    timeout_write: float = Field(default=30.0, gt=0.0, le=600.0, description="Write timeout in seconds")
    timeout_pool: float = Field(default=5.0, gt=0.0, le=60.0, description="Acquire-from-pool timeout in seconds")
    pool_max_connections: int = Field(default=100, ge=1, le=1024, description="Max concurrent connections")
    pool_keepalive_max: int = Field(default=20, ge=0, le=1024, description="Keepalive pool size")
    keepalive_expiry: float = Field(default=5.0, ge=0.0, le=600.0, description="Idle connection expiry in seconds")
    trust_env: bool = Field(default=True, description="Honor HTTP(S)_PROXY and NO_PROXY environment variables")
    verify_tls: bool = Field(default=True, description="Verify server certificates")


class RedirectSettings(BaseModel):
    """Defaults for :class:`~ClientRuntime.HttpAdapter.network.options.RedirectHandlerOption`."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    max_redirect: int = Field(default=5, ge=0, le=MAX_REDIRECT_LIMIT)
    allow_redirect_on_scheme_change: bool = False


class RetrySettings(BaseModel):
    """Transient failure retry settings (429/503/504)."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    max_retries: int = Field(default=3, ge=0, le=MAX_RETRY_LIMIT, description="Retries after the first attempt")
    delay: float = Field(
        default=3.0,
        ge=0.0,
        le=MAX_RETRY_DELAY_SECONDS,
        description="Backoff multiplier in seconds",
    )
    max_delay: float = Field(
        default=MAX_RETRY_DELAY_SECONDS,
        ge=0.0,
        le=MAX_RETRY_DELAY_SECONDS,
        description="Cap on any single wait, Retry-After included",
    )


class CompressionSettings(BaseModel):
    """Request/response compression settings."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    enabled: bool = True


class TelemetrySettings(BaseModel):
    """Telemetry and tracing settings."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    tracer_instrumentation_name: str = Field(default="ClientRuntime.HttpAdapter")
    include_euii_attributes: bool = Field(
        default=False,
        description="Record end-user identifiable information (full URLs) on spans",
    )
    product_name: str = Field(default="client-runtime-python")
    product_version: str = Field(default="1.0.0")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    emit_json_logs: bool = Field(default=False, description="Emit JSON-formatted logs")
    log_requests: bool = Field(default=True, description="Emit a net.request record per HTTP exchange")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize and validate logging level."""
        upper = str(v).upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}, got '{v}'")
        return upper

    def level_int(self) -> int:
        """Convert level string to logging module integer."""
        return getattr(logging, self.level)


class AdapterSettings(BaseSettings):
    """Top-level settings consumed by the adapter and client factory."""

    model_config = SettingsConfigDict(
        env_prefix="CLIENTRUNTIME_",
        env_nested_delimiter="__",
        frozen=True,
        extra="ignore",
    )

    base_url: Optional[str] = Field(default=None, description="Default base URL for {+baseurl}")
    http: HttpSettings = Field(default_factory=HttpSettings)
    redirect: RedirectSettings = Field(default_factory=RedirectSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    compression: CompressionSettings = Field(default_factory=CompressionSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/") or None
        return v

    def config_hash(self) -> str:
        """Return a stable hash of the normalized settings."""
        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def load_settings(path: Optional[Path] = None, **overrides: Any) -> AdapterSettings:
    """Build settings from an optional YAML file, environment, and keyword overrides.

    Keyword overrides win over the YAML file; environment variables fill in
    anything neither provides.

    Raises:
        ConfigurationError: If the file is unreadable, not a mapping, or fails validation.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        try:
            loaded = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Unable to read settings file {path}: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Settings file {path} must contain a mapping at the top level")
        data.update(loaded)
    data.update(overrides)
    try:
        return AdapterSettings(**data)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid adapter settings: {exc}") from exc


_settings: Optional[AdapterSettings] = None
_settings_lock = threading.Lock()


def get_settings() -> AdapterSettings:
    """Return the process settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop cached settings (primarily for testing)."""
    global _settings
    with _settings_lock:
        _settings = None
