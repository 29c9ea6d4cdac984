# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Certificate issuance endpoint.

Implements:
- POST /signCertificate - Validate a signing request and issue a certificate

The requester's identity key is established upstream: an authentication
layer sets ``request.state.identity_key``, or a trusted proxy forwards it in
the ``x-bsv-auth-identity-key`` header.
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse

from .errors import auth_error

logger = logging.getLogger(__name__)

IDENTITY_KEY_HEADER = "x-bsv-auth-identity-key"


def requester_identity(request: Request) -> str | None:
    """Identity key of the authenticated requester, if any."""
    identity_key = getattr(request.state, "identity_key", None)
    return identity_key or request.headers.get(IDENTITY_KEY_HEADER)


async def sign_certificate_endpoint(request: Request) -> JSONResponse:
    """POST /signCertificate - Validate and sign a new certificate.

    Request Body (JSON):
        {
            "clientNonce": "base64",
            "type": "base64",
            "fields": {"name": "base64 ciphertext"},
            "masterKeyring": {"name": "base64 encrypted key"}
        }

    Returns:
        200: {certificate, serverNonce}
        400: {status, description} naming the first missing member
        401: No authenticated identity
        500: {status, code, description}
    """
    identity_key = requester_identity(request)
    if not identity_key:
        return auth_error("Certificate requests must be authenticated")

    try:
        body = await request.json()
    except ValueError:
        body = None

    result = await request.app.state.services.issuer.sign_certificate(body, identity_key)
    return JSONResponse(result.body, status_code=result.status_code)
