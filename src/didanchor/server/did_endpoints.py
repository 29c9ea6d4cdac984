# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""DID API endpoints.

Implements:
- POST /api/v1/dids - Anchor a new DID document
- GET /api/v1/dids/{did} - Resolve a creation-form DID
- PUT /api/v1/dids/{did} - Update an outpoint-form DID
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse

from ..core.exceptions import DIDAnchorException, EncodingError, FormatError, ValidationError
from ..registry.document import DIDDocument
from .errors import (
    ERR_INVALID_DID,
    internal_error,
    invalid_json_error,
    missing_field_error,
    not_found_error,
    validation_error,
)

logger = logging.getLogger(__name__)


async def create_did_endpoint(request: Request) -> JSONResponse:
    """POST /api/v1/dids - Anchor a new DID document.

    Request Body (JSON):
        {
            "didDocument": {...},
            "publicKeyJwk": {...},  // optional
            "keyId": "did:...#key-1"  // optional
        }

    Returns:
        201: {did, txid, didDocument, sideEffects}
        400: Invalid request
        500: Wallet or encoding failure
    """
    registry = request.app.state.services.registry

    try:
        body = await request.json()
    except ValueError:
        return invalid_json_error()

    if not isinstance(body, dict) or not isinstance(body.get("didDocument"), dict):
        return missing_field_error("didDocument")
    public_key_jwk = body.get("publicKeyJwk")
    if public_key_jwk is not None and not isinstance(public_key_jwk, dict):
        return validation_error("publicKeyJwk must be an object")

    try:
        result = await registry.create(body["didDocument"], public_key_jwk=public_key_jwk, key_id=body.get("keyId"))
    except (EncodingError, ValidationError) as e:
        return validation_error(e.message)
    except DIDAnchorException as e:
        return internal_error(e)

    return JSONResponse(result.to_dict(), status_code=201)


async def resolve_did_endpoint(request: Request) -> JSONResponse:
    """GET /api/v1/dids/{did} - Resolve a DID to its document.

    Returns:
        200: The DID document (or the raw anchored value)
        400: Not a creation-form DID
        404: DID not indexed
        500: Overlay failure
    """
    registry = request.app.state.services.registry
    did = request.path_params["did"]

    try:
        document = await registry.resolve(did)
    except FormatError as e:
        return validation_error(e.message, code=ERR_INVALID_DID)
    except DIDAnchorException as e:
        return internal_error(e)

    if document is None:
        return not_found_error("DID")
    if isinstance(document, DIDDocument):
        return JSONResponse(document.to_dict())
    return JSONResponse(document)


async def update_did_endpoint(request: Request) -> JSONResponse:
    """PUT /api/v1/dids/{did} - Publish a new document for a DID.

    Request Body (JSON):
        {"didDocument": {...}}

    Returns:
        200: {did, txid} with the new outpoint-form DID
        400: Invalid request or not an outpoint-form DID
        500: Wallet failure
    """
    registry = request.app.state.services.registry
    did = request.path_params["did"]

    try:
        body = await request.json()
    except ValueError:
        return invalid_json_error()

    if not isinstance(body, dict) or not isinstance(body.get("didDocument"), dict):
        return missing_field_error("didDocument")

    try:
        result = await registry.update(did, body["didDocument"])
    except FormatError as e:
        return validation_error(e.message, code=ERR_INVALID_DID)
    except ValidationError as e:
        return validation_error(e.message)
    except DIDAnchorException as e:
        return internal_error(e)

    return JSONResponse(result.to_dict())
