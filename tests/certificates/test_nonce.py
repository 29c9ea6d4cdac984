"""Tests for certificate nonces and replay tracking.

Tests cover:
- Nonce creation (format, uniqueness)
- Nonce verification between two parties
- Interoperability with nonces from bsv-sdk wallets
- NonceTracker (record, claim, TTL expiry, pruning, capacity)
"""

from __future__ import annotations

import base64
import threading
import time
from unittest.mock import patch

import pytest
from bsv.auth.utils import create_nonce as sdk_create_nonce
from bsv.auth.utils import verify_nonce as sdk_verify_nonce
from bsv.keys import PrivateKey
from bsv.wallet import ProtoWallet

from didanchor.certificates.nonce import (
    DEFAULT_NONCE_TTL_SECONDS,
    NonceTracker,
    create_nonce,
    verify_nonce,
)
from didanchor.crypto.keys import KeyWallet

CERTIFIER_KEY = "a3" * 32
SUBJECT_KEY = "5c" * 32

MONOTONIC = "didanchor.certificates.nonce.time.monotonic"

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def tracker():
    """Create a NonceTracker with short TTL for testing."""
    return NonceTracker(ttl_seconds=5)


def _proto_wallet(private_key_hex: str) -> ProtoWallet:
    return ProtoWallet(PrivateKey(bytes.fromhex(private_key_hex)), permission_callback=lambda action: True)


# =============================================================================
# NONCE CREATION AND VERIFICATION
# =============================================================================


@pytest.mark.asyncio
class TestCreateNonce:
    """Tests for create_nonce."""

    async def test_format(self, subject_wallet):
        raw = base64.b64decode(await create_nonce(subject_wallet))
        assert len(raw) == 48

    async def test_uniqueness(self, subject_wallet):
        nonces = {await create_nonce(subject_wallet) for _ in range(50)}
        assert len(nonces) == 50

    async def test_self_verifies(self, subject_wallet):
        nonce = await create_nonce(subject_wallet)
        assert await verify_nonce(nonce, subject_wallet) is True


@pytest.mark.asyncio
class TestVerifyNonce:
    """Tests for verify_nonce between a client and a certifier."""

    async def test_counterparty_verifies(self, subject_wallet, certifier_wallet):
        nonce = await create_nonce(subject_wallet, certifier_wallet.identity_key)
        assert await verify_nonce(nonce, certifier_wallet, subject_wallet.identity_key) is True

    async def test_wrong_counterparty(self, subject_wallet, certifier_wallet):
        nonce = await create_nonce(subject_wallet, certifier_wallet.identity_key)
        stranger = KeyWallet.from_hex("71" * 32)
        assert await verify_nonce(nonce, certifier_wallet, stranger.identity_key) is False

    async def test_tampered_hmac(self, subject_wallet):
        raw = bytearray(base64.b64decode(await create_nonce(subject_wallet)))
        raw[-1] ^= 0x01
        assert await verify_nonce(base64.b64encode(bytes(raw)).decode(), subject_wallet) is False

    async def test_tampered_random_half(self, subject_wallet):
        raw = bytearray(base64.b64decode(await create_nonce(subject_wallet)))
        raw[0] ^= 0x01
        assert await verify_nonce(base64.b64encode(bytes(raw)).decode(), subject_wallet) is False

    async def test_wrong_length(self, subject_wallet):
        assert await verify_nonce(base64.b64encode(b"\x00" * 16).decode(), subject_wallet) is False

    async def test_not_base64(self, subject_wallet):
        assert await verify_nonce("not base64!!", subject_wallet) is False

    async def test_malformed_counterparty(self, subject_wallet):
        nonce = await create_nonce(subject_wallet)
        assert await verify_nonce(nonce, subject_wallet, "not-a-key") is False


@pytest.mark.asyncio
class TestWalletInterop:
    """Nonces cross between didanchor and bsv-sdk wallets in both directions."""

    async def test_sdk_client_nonce_verifies(self, certifier_wallet, subject_wallet):
        nonce = sdk_create_nonce(_proto_wallet(SUBJECT_KEY), certifier_wallet.identity_key)
        assert await verify_nonce(nonce, certifier_wallet, subject_wallet.identity_key) is True

    async def test_server_nonce_verifies_in_sdk(self, certifier_wallet, subject_wallet):
        nonce = await create_nonce(certifier_wallet, subject_wallet.identity_key)
        assert sdk_verify_nonce(nonce, _proto_wallet(SUBJECT_KEY), certifier_wallet.identity_key) is True

    async def test_sdk_nonce_for_someone_else_rejected(self, certifier_wallet, subject_wallet):
        stranger = KeyWallet.from_hex("71" * 32)
        nonce = sdk_create_nonce(_proto_wallet(SUBJECT_KEY), stranger.identity_key)
        assert await verify_nonce(nonce, certifier_wallet, subject_wallet.identity_key) is False


# =============================================================================
# NONCE TRACKER: BASIC OPERATIONS
# =============================================================================


class TestNonceTrackerBasic:
    """Tests for NonceTracker basic operations."""

    def test_unseen_nonce(self, tracker: NonceTracker):
        assert tracker.is_seen("key-a", "nonce-1") is False

    def test_record_and_check(self, tracker: NonceTracker):
        tracker.record_nonce("key-a", "nonce-1")
        assert tracker.is_seen("key-a", "nonce-1") is True

    def test_scoped_per_identity(self, tracker: NonceTracker):
        tracker.record_nonce("key-a", "nonce-1")
        assert tracker.is_seen("key-b", "nonce-1") is False

    def test_claim_once(self, tracker: NonceTracker):
        assert tracker.claim("key-a", "nonce-1") is True
        assert tracker.claim("key-a", "nonce-1") is False
        assert tracker.claim("key-b", "nonce-1") is True

    def test_nonce_count(self, tracker: NonceTracker):
        tracker.record_nonce("key-a", "nonce-1")
        tracker.record_nonce("key-a", "nonce-2")
        tracker.record_nonce("key-b", "nonce-1")
        assert tracker.nonce_count() == 3
        assert tracker.nonce_count("key-a") == 2
        assert tracker.nonce_count("key-c") == 0

    def test_clear(self, tracker: NonceTracker):
        tracker.record_nonce("key-a", "nonce-1")
        tracker.clear()
        assert tracker.nonce_count() == 0

    def test_default_ttl(self):
        assert NonceTracker().ttl_seconds == DEFAULT_NONCE_TTL_SECONDS


# =============================================================================
# NONCE TRACKER: EXPIRY
# =============================================================================


class TestNonceTrackerExpiry:
    """Tests for TTL-based expiry."""

    def test_expired_nonce_is_unseen(self, tracker: NonceTracker):
        start = time.monotonic()
        with patch(MONOTONIC, return_value=start):
            tracker.record_nonce("key-a", "nonce-1")
        with patch(MONOTONIC, return_value=start + 6):
            assert tracker.is_seen("key-a", "nonce-1") is False
            assert tracker.nonce_count() == 0

    def test_expired_nonce_can_be_claimed_again(self, tracker: NonceTracker):
        start = time.monotonic()
        with patch(MONOTONIC, return_value=start):
            assert tracker.claim("key-a", "nonce-1") is True
        with patch(MONOTONIC, return_value=start + 6):
            assert tracker.claim("key-a", "nonce-1") is True

    def test_recording_prunes_expired_entries_of_other_identities(self, tracker: NonceTracker):
        """Entries of identities that never return are still dropped."""
        start = time.monotonic()
        with patch(MONOTONIC, return_value=start):
            for n in range(5000):
                tracker.record_nonce(f"identity-{n}", "nonce")
        with patch(MONOTONIC, return_value=start + 6):
            tracker.record_nonce("late-identity", "nonce")

        assert len(tracker._expiries) == 1

    def test_zero_ttl_keeps_nothing(self):
        tracker = NonceTracker(ttl_seconds=0)
        for n in range(5000):
            tracker.record_nonce(f"identity-{n}", "nonce")
        assert tracker.nonce_count() == 0

    def test_cleanup_removes_expired(self, tracker: NonceTracker):
        start = time.monotonic()
        with patch(MONOTONIC, return_value=start):
            tracker.record_nonce("key-a", "old")
        with patch(MONOTONIC, return_value=start + 4):
            tracker.record_nonce("key-a", "fresh")
        with patch(MONOTONIC, return_value=start + 6):
            removed = tracker.cleanup()
            assert tracker.nonce_count("key-a") == 1

        assert removed == 1

    def test_capacity_evicts_oldest(self, caplog):
        tracker = NonceTracker(ttl_seconds=60, max_entries=2)
        tracker.record_nonce("key-a", "n1")
        tracker.record_nonce("key-a", "n2")
        tracker.record_nonce("key-b", "n3")

        assert tracker.nonce_count() == 2
        assert tracker.is_seen("key-a", "n1") is False
        assert tracker.is_seen("key-b", "n3") is True
        assert any("Nonce tracker full" in r.getMessage() for r in caplog.records)


class TestNonceTrackerThreadSafety:
    def test_concurrent_claims(self, tracker: NonceTracker):
        results: list[bool] = []

        def claim(prefix: str) -> None:
            for i in range(200):
                results.append(tracker.claim("key-a", f"{prefix}-{i}"))
                results.append(tracker.claim("key-a", "shared"))

        threads = [threading.Thread(target=claim, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.nonce_count("key-a") == 801
        assert results.count(True) == 801
