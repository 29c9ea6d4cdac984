# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Core configuration - centralized config for the didanchor package.

All environment-based configuration should flow through this module.

Usage:
    from didanchor.core.config import get_config
    config = get_config()

    topic = config.topic
    log_level = config.log_level
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Configuration settings for didanchor.

    Settings can be configured via environment variables with the
    DIDANCHOR_ prefix, or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DIDANCHOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # DID SETTINGS
    # ==========================================================================

    did_scheme: str = Field(default="bsv", description="DID method name (second DID segment)")
    topic: str = Field(default="tm_did", description="Overlay topic DIDs are anchored under")

    # ==========================================================================
    # COLLABORATORS
    # ==========================================================================

    overlay_url: str | None = Field(
        default=None,
        description="Base URL of the overlay service exposing /lookup and /submit",
    )
    wallet_url: str = Field(
        default="http://localhost:3321",
        description="Base URL of the wallet HTTP interface used to create transactions",
    )
    server_private_key: str | None = Field(
        default=None,
        description="Hex secp256k1 private key of the certifier (random per process if unset)",
    )

    # ==========================================================================
    # LOOKUP INDEX
    # ==========================================================================

    lookup_index: str = Field(default="memory", description="Lookup index backend: 'memory' or 'redis'")
    redis_url: str = Field(default="redis://localhost:6379", description="Redis URL for the redis backend")

    # ==========================================================================
    # CERTIFICATE ISSUANCE
    # ==========================================================================

    nonce_ttl_seconds: float = Field(default=3600, gt=0, description="How long a redeemed client nonce is refused again")
    max_tracked_nonces: int = Field(default=100_000, gt=0, description="Upper bound on remembered client nonces")

    # ==========================================================================
    # SERVER SETTINGS
    # ==========================================================================

    host: str = Field(default="127.0.0.1", description="Host to bind to")
    port: int = Field(default=8080, description="Port to bind to")

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field(default="", description="Log format: 'json', 'text', or '' (auto-detect)")
    log_file: str | None = Field(default=None, description="Log file path (optional)")


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
