# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Custom exception hierarchy for didanchor.

Every protocol failure maps to one class so callers (and the HTTP layer)
can decide between a 400 with a description and a generic 500.
"""

from __future__ import annotations

from typing import Any


class DIDAnchorException(Exception):  # noqa: N818 - mirrors the rest of the hierarchy
    """Base exception for all didanchor errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class FormatError(DIDAnchorException):
    """Malformed DID identifier.

    Raised when:
    - The identifier has the wrong number of segments for the operation
    - The method prefix or scheme does not match
    - An output index is not a non-negative integer
    """

    def __init__(self, message: str, did: str | None = None):
        details = {}
        if did is not None:
            details["did"] = did
        super().__init__(message, details)
        self.did = did


class EncodingError(DIDAnchorException):
    """Bad field list or malformed locking script."""


class TransactionError(DIDAnchorException):
    """The transaction collaborator could not build, fund or sign a transaction."""

    def __init__(self, message: str, status: int | None = None):
        details = {}
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.status = status


class ProviderError(DIDAnchorException):
    """Overlay lookup failed or returned a malformed payload."""

    def __init__(self, message: str, status: int | None = None):
        details = {}
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.status = status


class BroadcastError(DIDAnchorException):
    """The overlay rejected a submitted transaction."""

    def __init__(self, message: str, topic: str | None = None, response: Any = None):
        details: dict[str, Any] = {}
        if topic:
            details["topic"] = topic
        if response is not None:
            details["response"] = response
        super().__init__(message, details)
        self.topic = topic
        self.response = response


class ValidationError(DIDAnchorException):
    """A request field is missing or has the wrong shape.

    The message is returned to the caller verbatim, so it must name the
    missing field and nothing else.
    """

    def __init__(self, message: str, field: str | None = None):
        details = {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class NonceError(DIDAnchorException):
    """A nonce was forged, replayed or does not belong to the requester."""


class DecryptionError(DIDAnchorException):
    """A certificate field could not be decrypted with its keyring entry."""

    def __init__(self, message: str, field: str | None = None):
        details = {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class KeyDerivationError(DIDAnchorException):
    """A key cannot be derived for the requested counterparty."""


class ConfigException(DIDAnchorException):
    """Exception for configuration errors.

    Raised when:
    - A backend name is unknown
    - A configured key is not valid hex
    - A collaborator URL is required but not configured
    """

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []
