"""Global test fixtures for the didanchor test suite."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from didanchor.core.config import clear_config_cache
from didanchor.crypto.keys import KeyWallet
from didanchor.registry.index import MemoryLookupIndex, reset_lookup_index
from didanchor.registry.registry import DIDRegistry
from didanchor.registry.wallet import CreateActionArgs, CreateActionResult

CERTIFIER_KEY = "a3" * 32
SUBJECT_KEY = "5c" * 32

ANCHOR_TXID = "ab" * 32
UPDATE_TXID = "cd" * 32


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level singletons between tests."""
    clear_config_cache()
    reset_lookup_index()
    yield
    clear_config_cache()
    reset_lookup_index()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all DIDANCHOR_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("DIDANCHOR_"):
            monkeypatch.delenv(key, raising=False)


# ============================================================================
# Wallet Fixtures
# ============================================================================


@pytest.fixture
def certifier_wallet() -> KeyWallet:
    """The certifier's wallet, with a fixed key."""
    return KeyWallet.from_hex(CERTIFIER_KEY)


@pytest.fixture
def subject_wallet() -> KeyWallet:
    """A certificate subject's wallet, with a fixed key."""
    return KeyWallet.from_hex(SUBJECT_KEY)


class RecordingTransactionCreator:
    """Transaction creator that records requests and returns canned txids."""

    def __init__(self, txids: list[str] | None = None, tx: bytes | None = b"\x01\x00\x00\x00") -> None:
        self.calls: list[CreateActionArgs] = []
        self._txids = list(txids or [ANCHOR_TXID])
        self._tx = tx

    async def create_action(self, args: CreateActionArgs) -> CreateActionResult:
        self.calls.append(args)
        txid = self._txids[min(len(self.calls), len(self._txids)) - 1]
        return CreateActionResult(txid=txid, tx=self._tx)


@pytest.fixture
def transaction_creator() -> RecordingTransactionCreator:
    return RecordingTransactionCreator()


@pytest.fixture
def make_transaction_creator():
    """Factory for transaction creators with chosen txids or raw bytes."""
    return RecordingTransactionCreator


@pytest.fixture
def lookup_index() -> MemoryLookupIndex:
    return MemoryLookupIndex()


@pytest.fixture
def mock_notifier():
    """Overlay notifier that accepts every submission."""
    notifier = MagicMock()
    notifier.notify = AsyncMock(return_value={"status": "success"})
    return notifier


@pytest.fixture
def registry(subject_wallet, transaction_creator, lookup_index, mock_notifier) -> DIDRegistry:
    """Registry wired to in-process collaborators."""
    return DIDRegistry(
        wallet=subject_wallet,
        transaction_creator=transaction_creator,
        topic="tm_did",
        scheme="bsv",
        lookup_index=lookup_index,
        notifier=mock_notifier,
    )
