# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""didanchor core - configuration, logging and the error taxonomy."""

from .config import CoreSettings, clear_config_cache, get_config
from .exceptions import (
    BroadcastError,
    ConfigException,
    DecryptionError,
    DIDAnchorException,
    EncodingError,
    FormatError,
    KeyDerivationError,
    NonceError,
    ProviderError,
    TransactionError,
    ValidationError,
)
from .logging import configure_logging, correlation_context, redact

__all__ = [
    "BroadcastError",
    "ConfigException",
    "CoreSettings",
    "DIDAnchorException",
    "DecryptionError",
    "EncodingError",
    "FormatError",
    "KeyDerivationError",
    "NonceError",
    "ProviderError",
    "TransactionError",
    "ValidationError",
    "clear_config_cache",
    "configure_logging",
    "correlation_context",
    "get_config",
    "redact",
]
