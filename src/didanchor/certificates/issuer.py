# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Certificate issuance: the certifier side of the mutual-nonce exchange.

Flow for one request, each step gating the next:

1. Validate the request body (client nonce, type, fields, master keyring).
2. Verify the client nonce was created for us by the requester, and not
   presented before.
3. Create a server nonce and derive the serial number from both nonces.
4. Decrypt every field with the master keyring (proves the keyring matches).
5. Sign a certificate over the still-encrypted field values.

Validation failures come back as 400 with a description; anything that
fails afterwards is logged and reported as a generic 500.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

from ..core.exceptions import NonceError, ValidationError
from ..core.logging import redact
from ..crypto.keys import KeyringWallet, ProtocolID
from .certificate import UNREVOCABLE_OUTPOINT, Certificate
from .master import MasterCertificate
from .nonce import NonceTracker, create_nonce, verify_nonce

logger = logging.getLogger(__name__)

ISSUANCE_PROTOCOL_ID: ProtocolID = (2, "certificate issuance")

INTERNAL_ERROR_BODY = {
    "status": "error",
    "code": "ERR_INTERNAL",
    "description": "An internal error has occurred.",
}

# (body key, message) in the order they are checked
_REQUIRED_MEMBERS = (
    ("clientNonce", "Missing client nonce!"),
    ("type", "Missing certificate type!"),
    ("fields", "Missing certificate fields to sign!"),
    ("masterKeyring", "Missing masterKeyring to decrypt fields!"),
)


@dataclass
class CertificateRequest:
    """A validated signing request."""

    client_nonce: str
    type: str
    fields: dict[str, str]
    master_keyring: dict[str, str]


@dataclass
class CertificateChallenge:
    """Both nonces of one exchange and the serial number they produce."""

    client_nonce: str
    server_nonce: str
    identity_key: str
    serial_number: str


@dataclass
class IssuanceResult:
    """HTTP status and JSON body for a signing request."""

    status_code: int
    body: dict[str, Any]


def validate_request(body: Any) -> CertificateRequest:
    """Check required members are present, first missing one wins.

    Raises:
        ValidationError: A member is missing or empty.
    """
    if not isinstance(body, dict):
        raise ValidationError("Invalid parameters")
    for key, message in _REQUIRED_MEMBERS:
        if not body.get(key):
            raise ValidationError(message, field=key)
    return CertificateRequest(
        client_nonce=body["clientNonce"],
        type=body["type"],
        fields=body["fields"],
        master_keyring=body["masterKeyring"],
    )


async def derive_serial_number(
    wallet: KeyringWallet,
    client_nonce: str,
    server_nonce: str,
    identity_key: str,
) -> str:
    """HMAC over both decoded nonces, keyed between certifier and subject."""
    data = base64.b64decode(client_nonce) + base64.b64decode(server_nonce)
    digest = await wallet.create_hmac(data, ISSUANCE_PROTOCOL_ID, server_nonce + client_nonce, identity_key)
    return base64.b64encode(digest).decode("ascii")


class CertificateIssuer:
    """Validates signing requests and issues certificates.

    Args:
        wallet: The certifier's wallet.
        nonce_tracker: Rejects client nonces already presented by the same
            identity. Replays are not detected when omitted.
    """

    def __init__(self, wallet: KeyringWallet, nonce_tracker: NonceTracker | None = None) -> None:
        self.wallet = wallet
        self.nonce_tracker = nonce_tracker

    async def sign_certificate(self, body: Any, identity_key: str) -> IssuanceResult:
        try:
            request = validate_request(body)
        except ValidationError as e:
            logger.info(f"Rejected certificate request from {identity_key}: {e.message}")
            return IssuanceResult(400, {"status": "error", "description": e.message})

        try:
            certificate, challenge = await self.issue(request, identity_key)
        except Exception as e:
            logger.error(
                f"Certificate issuance failed for {identity_key}: {e} (request: {redact(body)})",
                exc_info=True,
            )
            return IssuanceResult(500, dict(INTERNAL_ERROR_BODY))

        return IssuanceResult(200, {"certificate": certificate.to_dict(), "serverNonce": challenge.server_nonce})

    async def issue(self, request: CertificateRequest, identity_key: str) -> tuple[Certificate, CertificateChallenge]:
        """Run the exchange for a validated request.

        Raises:
            NonceError: The client nonce is invalid or replayed.
            DecryptionError: A field could not be decrypted with the keyring.
        """
        if not await verify_nonce(request.client_nonce, self.wallet, identity_key):
            raise NonceError("Client nonce failed verification")
        if self.nonce_tracker is not None and not self.nonce_tracker.claim(identity_key, request.client_nonce):
            raise NonceError("Client nonce has already been used")

        server_nonce = await create_nonce(self.wallet, identity_key)
        serial_number = await derive_serial_number(self.wallet, request.client_nonce, server_nonce, identity_key)
        challenge = CertificateChallenge(
            client_nonce=request.client_nonce,
            server_nonce=server_nonce,
            identity_key=identity_key,
            serial_number=serial_number,
        )

        decrypted = await MasterCertificate.decrypt_fields(
            self.wallet, request.master_keyring, request.fields, identity_key
        )
        logger.debug(f"Verified {len(decrypted)} fields for certificate {serial_number}")

        certificate = Certificate(
            type=request.type,
            serial_number=serial_number,
            subject=identity_key,
            certifier=await self.wallet.get_public_key(identity_key=True),
            revocation_outpoint=UNREVOCABLE_OUTPOINT,
            fields=dict(request.fields),
        )
        await certificate.sign(self.wallet)
        logger.info(f"Issued certificate {serial_number} to {identity_key}")
        return certificate, challenge
