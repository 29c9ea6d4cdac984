# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Mutual nonces for certificate issuance, with replay tracking.

A nonce is ``base64(random16 || HMAC(random16))`` in the framing of
``bsv.auth.utils.create_nonce``: protocol ``(2, "server hmac")`` with the
sixteen random bytes, read as latin-1, as the key id. The HMAC key is
derived between the nonce creator and its counterparty, so only the two
parties to the exchange can produce or check a nonce, and nonces from any
BRC-100 wallet verify here:

    # Client side
    client_nonce = await create_nonce(client_wallet, certifier_identity_key)

    # Certifier side
    if not await verify_nonce(client_nonce, certifier_wallet, client_identity_key):
        reject("Bad nonce")
    if not tracker.claim(client_identity_key, client_nonce):
        reject("Replayed nonce")
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
import threading
import time
from collections import OrderedDict

from ..core.exceptions import KeyDerivationError
from ..crypto.keys import SELF, KeyringWallet, ProtocolID

logger = logging.getLogger(__name__)

NONCE_PROTOCOL_ID: ProtocolID = (2, "server hmac")

NONCE_RANDOM_BYTES = 16
NONCE_HMAC_BYTES = 32

DEFAULT_NONCE_TTL_SECONDS = 3600
DEFAULT_MAX_TRACKED_NONCES = 100_000


def _key_id(first_half: bytes) -> str:
    return first_half.decode("latin-1")


async def create_nonce(wallet: KeyringWallet, counterparty: str = SELF) -> str:
    """Create a nonce that ``counterparty`` can verify.

    Returns:
        Base64 of 16 random bytes followed by their 32-byte HMAC.
    """
    first_half = secrets.token_bytes(NONCE_RANDOM_BYTES)
    second_half = await wallet.create_hmac(first_half, NONCE_PROTOCOL_ID, _key_id(first_half), counterparty)
    return base64.b64encode(first_half + second_half).decode("ascii")


async def verify_nonce(nonce: str, wallet: KeyringWallet, counterparty: str = SELF) -> bool:
    """Check that ``nonce`` was created by ``counterparty`` for this wallet."""
    try:
        raw = base64.b64decode(nonce, validate=True)
    except (binascii.Error, ValueError):
        return False
    if len(raw) != NONCE_RANDOM_BYTES + NONCE_HMAC_BYTES:
        return False
    first_half, second_half = raw[:NONCE_RANDOM_BYTES], raw[NONCE_RANDOM_BYTES:]
    try:
        return await wallet.verify_hmac(first_half, second_half, NONCE_PROTOCOL_ID, _key_id(first_half), counterparty)
    except KeyDerivationError as e:
        logger.info(f"Nonce counterparty rejected: {e.message}")
        return False


class NonceTracker:
    """Remembers client nonces already redeemed, until they expire.

    Entries live in one map ordered by expiry; every call first drops the
    expired head of that map, so memory stays bounded by the number of
    nonces redeemed within one TTL. ``max_entries`` caps that further by
    evicting the oldest entries.

    Args:
        ttl_seconds: How long a redeemed nonce is refused again.
        max_entries: Upper bound on remembered nonces across all identities.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_NONCE_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_TRACKED_NONCES,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        # (identity key, nonce) -> expiry, oldest expiry first
        self._expiries: OrderedDict[tuple[str, str], float] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _prune(self, now: float) -> int:
        removed = 0
        while self._expiries:
            key, expires_at = next(iter(self._expiries.items()))
            if expires_at > now:
                break
            del self._expiries[key]
            removed += 1
        return removed

    def _store(self, key: tuple[str, str], now: float) -> None:
        self._expiries[key] = now + self._ttl
        self._expiries.move_to_end(key)
        while len(self._expiries) > self._max_entries:
            (evicted_identity, _), _ = self._expiries.popitem(last=False)
            logger.warning(f"Nonce tracker full; evicted an unexpired nonce of {evicted_identity}")

    def record_nonce(self, identity_key: str, nonce: str) -> None:
        """Remember ``nonce`` as redeemed by ``identity_key``."""
        with self._lock:
            now = time.monotonic()
            self._prune(now)
            self._store((identity_key, nonce), now)

    def is_seen(self, identity_key: str, nonce: str) -> bool:
        """Whether ``nonce`` was redeemed by ``identity_key`` and has not expired."""
        with self._lock:
            self._prune(time.monotonic())
            return (identity_key, nonce) in self._expiries

    def claim(self, identity_key: str, nonce: str) -> bool:
        """Record ``nonce`` unless already redeemed; False means a replay."""
        with self._lock:
            now = time.monotonic()
            self._prune(now)
            key = (identity_key, nonce)
            if key in self._expiries:
                return False
            self._store(key, now)
            return True

    def cleanup(self) -> int:
        """Drop expired entries now; returns how many were removed."""
        with self._lock:
            removed = self._prune(time.monotonic())
        if removed:
            logger.debug(f"Nonce cleanup: removed {removed} expired nonces")
        return removed

    def nonce_count(self, identity_key: str | None = None) -> int:
        """Number of unexpired entries, optionally for one identity."""
        with self._lock:
            self._prune(time.monotonic())
            if identity_key is None:
                return len(self._expiries)
            return sum(1 for identity, _ in self._expiries if identity == identity_key)

    def clear(self) -> None:
        with self._lock:
            self._expiries.clear()
