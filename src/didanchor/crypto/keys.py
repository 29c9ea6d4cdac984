# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Local secp256k1 key holder implementing the keying operations didanchor needs.

Derivation is BRC-42 as implemented by ``bsv-sdk``'s :class:`KeyDeriver`, so
every key, HMAC and ciphertext here matches what a real wallet produces for
the same protocol, key id and counterparty:

- Child keys: identity scalar + HMAC-SHA256(ECDH secret, invoice) mod n,
  with the invoice ``"<security level>-<protocol name>-<key id>"``.
- Symmetric key: x coordinate of the ECDH secret between the two parties'
  child keys. It backs HMACs (nonces, serial numbers) and AES-256-GCM
  encryption (certificate keyrings).

Counterparties are ``"self"``, ``"anyone"`` (the scalar 1, whose public key
is the generator) or a compressed public key in hex.
"""

from __future__ import annotations

import hmac
import logging
from typing import Protocol, runtime_checkable

from bsv.hash import sha256
from bsv.keys import PrivateKey, PublicKey
from bsv.primitives import SymmetricKey
from bsv.wallet import Counterparty, CounterpartyType, KeyDeriver
from bsv.wallet import Protocol as WalletProtocol

from ..core.exceptions import ConfigException, DecryptionError, KeyDerivationError

logger = logging.getLogger(__name__)

# (security level, protocol name)
ProtocolID = tuple[int, str]

CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

SELF = "self"
ANYONE = "anyone"

SYMMETRIC_KEY_BYTES = 32


# =============================================================================
# COLLABORATOR PROTOCOLS
# =============================================================================


@runtime_checkable
class SigningWallet(Protocol):
    """What the token encoder needs: derived public keys and signatures."""

    async def get_public_key(
        self,
        protocol_id: ProtocolID | None = None,
        key_id: str | None = None,
        counterparty: str = SELF,
        for_self: bool = False,
        identity_key: bool = False,
    ) -> str: ...

    async def create_signature(
        self,
        data: bytes,
        protocol_id: ProtocolID,
        key_id: str,
        counterparty: str = ANYONE,
    ) -> bytes: ...


@runtime_checkable
class KeyringWallet(SigningWallet, Protocol):
    """Full set of keying operations used by the certificate issuer."""

    async def verify_signature(
        self,
        data: bytes,
        signature: bytes,
        protocol_id: ProtocolID,
        key_id: str,
        counterparty: str = SELF,
        for_self: bool = False,
    ) -> bool: ...

    async def create_hmac(self, data: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF) -> bytes: ...

    async def verify_hmac(
        self, data: bytes, hmac_value: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF
    ) -> bool: ...

    async def encrypt(self, plaintext: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF) -> bytes: ...

    async def decrypt(self, ciphertext: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF) -> bytes: ...


# =============================================================================
# HELPERS
# =============================================================================


def to_counterparty(counterparty: str) -> Counterparty:
    """Map ``"self"``, ``"anyone"`` or a hex public key to an SDK counterparty."""
    if counterparty == SELF:
        return Counterparty(CounterpartyType.SELF)
    if counterparty == ANYONE:
        return Counterparty(CounterpartyType.ANYONE)
    try:
        return Counterparty(CounterpartyType.OTHER, PublicKey(counterparty))
    except (TypeError, ValueError) as e:
        raise KeyDerivationError(f"Invalid counterparty public key: {counterparty!r}") from e


def to_protocol(protocol_id: ProtocolID) -> WalletProtocol:
    """Validate a ``(security level, name)`` pair as an SDK protocol."""
    level, name = protocol_id
    if level not in (0, 1, 2):
        raise KeyDerivationError(f"Invalid security level: {level}")
    try:
        return WalletProtocol(level, name)
    except ValueError as e:
        raise KeyDerivationError(f"Invalid protocol name {name!r}: {e}") from e


# =============================================================================
# KEY WALLET
# =============================================================================


class KeyWallet:
    """In-process implementation of :class:`KeyringWallet`.

    Args:
        private_key: secp256k1 private key; a fresh one is generated when omitted.
    """

    def __init__(self, private_key: PrivateKey | None = None) -> None:
        self._private_key = private_key or PrivateKey()
        self._deriver = KeyDeriver(self._private_key)
        self._identity_key = self._private_key.public_key().hex()

    @classmethod
    def from_hex(cls, private_key_hex: str) -> KeyWallet:
        """Create a wallet from a 32-byte private key in hex."""
        try:
            value = int(private_key_hex, 16)
        except ValueError as e:
            raise ConfigException("Private key must be hex") from e
        if not 0 < value < CURVE_ORDER:
            raise ConfigException("Private key out of range for secp256k1")
        return cls(PrivateKey(value))

    @classmethod
    def anyone(cls) -> KeyWallet:
        """The publicly known wallet (scalar 1) used to check ``anyone`` signatures."""
        return cls(PrivateKey(1))

    @property
    def identity_key(self) -> str:
        return self._identity_key

    # -- derivation --

    def _derive(self, call, protocol_id: ProtocolID, key_id: str, counterparty: str, *args):
        protocol = to_protocol(protocol_id)
        party = to_counterparty(counterparty)
        try:
            return call(protocol, key_id, party, *args)
        except ValueError as e:
            raise KeyDerivationError(f"Cannot derive key for {protocol_id!r}/{key_id!r}: {e}") from e

    def _child_private_key(self, protocol_id: ProtocolID, key_id: str, counterparty: str) -> PrivateKey:
        return self._derive(self._deriver.derive_private_key, protocol_id, key_id, counterparty)

    def _symmetric_key(self, protocol_id: ProtocolID, key_id: str, counterparty: str) -> bytes:
        return self._derive(self._deriver.derive_symmetric_key, protocol_id, key_id, counterparty)

    # -- public keys and signatures --

    async def get_public_key(
        self,
        protocol_id: ProtocolID | None = None,
        key_id: str | None = None,
        counterparty: str = SELF,
        for_self: bool = False,
        identity_key: bool = False,
    ) -> str:
        if identity_key:
            return self._identity_key
        if protocol_id is None or key_id is None:
            raise KeyDerivationError("protocol_id and key_id are required unless identity_key is set")
        public_key = self._derive(self._deriver.derive_public_key, protocol_id, key_id, counterparty, for_self)
        return public_key.hex()

    async def create_signature(
        self,
        data: bytes,
        protocol_id: ProtocolID,
        key_id: str,
        counterparty: str = ANYONE,
    ) -> bytes:
        key = self._child_private_key(protocol_id, key_id, counterparty)
        return key.sign(data, hasher=sha256)

    async def verify_signature(
        self,
        data: bytes,
        signature: bytes,
        protocol_id: ProtocolID,
        key_id: str,
        counterparty: str = SELF,
        for_self: bool = False,
    ) -> bool:
        public_key = PublicKey(await self.get_public_key(protocol_id, key_id, counterparty, for_self=for_self))
        try:
            return public_key.verify(signature, data, hasher=sha256)
        except (IndexError, ValueError):
            logger.debug("Rejected malformed DER signature")
            return False

    # -- symmetric operations --

    async def create_hmac(self, data: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF) -> bytes:
        key = self._symmetric_key(protocol_id, key_id, counterparty)
        return hmac.new(key, data, "sha256").digest()

    async def verify_hmac(
        self, data: bytes, hmac_value: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF
    ) -> bool:
        expected = await self.create_hmac(data, protocol_id, key_id, counterparty)
        return hmac.compare_digest(expected, hmac_value)

    async def encrypt(self, plaintext: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF) -> bytes:
        """AES-256-GCM under the derived key; output is ``iv(32) || ciphertext || tag(16)``."""
        return SymmetricKey(self._symmetric_key(protocol_id, key_id, counterparty)).encrypt(plaintext)

    async def decrypt(self, ciphertext: bytes, protocol_id: ProtocolID, key_id: str, counterparty: str = SELF) -> bytes:
        key = SymmetricKey(self._symmetric_key(protocol_id, key_id, counterparty))
        try:
            return key.decrypt(ciphertext)
        except ValueError as e:
            raise DecryptionError(f"Ciphertext failed authentication: {e}") from e
