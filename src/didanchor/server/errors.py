# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Standardized REST error responses for the didanchor API.

All REST endpoints use these helpers for a consistent error format:
{
    "status": "error",
    "code": "ERR_CODE",
    "description": "Human readable message"
}

Internal failures never echo exception details; those are logged with a
request id the client can quote.
"""

from __future__ import annotations

import logging
import uuid

from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

# =============================================================================
# STANDARD ERROR CODES
# =============================================================================

# Validation errors (400)
ERR_INVALID_DID = "ERR_INVALID_DID"
ERR_INVALID_JSON = "ERR_INVALID_JSON"
ERR_MISSING_FIELD = "ERR_MISSING_FIELD"
ERR_INVALID_VALUE = "ERR_INVALID_VALUE"

# Authentication errors (401)
ERR_UNAUTHORIZED = "ERR_UNAUTHORIZED"

# Not found errors (404)
ERR_NOT_FOUND = "ERR_NOT_FOUND"

# Server errors (500)
ERR_INTERNAL = "ERR_INTERNAL"

INTERNAL_ERROR_MESSAGE = "An internal error has occurred."


# =============================================================================
# ERROR RESPONSE HELPERS
# =============================================================================


def error_response(code: str, description: str, status_code: int = 400) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        {"status": "error", "code": code, "description": description},
        status_code=status_code,
    )


def validation_error(description: str, code: str = ERR_INVALID_VALUE) -> JSONResponse:
    """Create a 400 validation error response."""
    return error_response(code, description, status_code=400)


def missing_field_error(field_name: str) -> JSONResponse:
    """Create a 400 error for a missing required field."""
    return error_response(ERR_MISSING_FIELD, f"{field_name} is required", status_code=400)


def invalid_json_error() -> JSONResponse:
    """Create a 400 error for an invalid JSON body."""
    return error_response(ERR_INVALID_JSON, "Invalid JSON body", status_code=400)


def auth_error(description: str = "Authentication required") -> JSONResponse:
    """Create a 401 authentication error response."""
    return error_response(ERR_UNAUTHORIZED, description, status_code=401)


def not_found_error(resource: str) -> JSONResponse:
    """Create a 404 not found error response."""
    return error_response(ERR_NOT_FOUND, f"{resource} not found", status_code=404)


def internal_error(exc: BaseException | None = None) -> JSONResponse:
    """Create a generic 500 response, logging ``exc`` under a request id."""
    request_id = uuid.uuid4().hex[:12]
    if exc is not None:
        logger.error("request_id=%s %s: %s", request_id, type(exc).__name__, exc)
    return JSONResponse(
        {
            "status": "error",
            "code": ERR_INTERNAL,
            "description": INTERNAL_ERROR_MESSAGE,
            "request_id": request_id,
        },
        status_code=500,
    )
