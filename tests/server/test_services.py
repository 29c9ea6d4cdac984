"""Tests for service wiring from configuration."""

from __future__ import annotations

import logging

import pytest

from didanchor.core.config import CoreSettings
from didanchor.core.exceptions import ConfigException
from didanchor.overlay.lookup import OverlayLookupClient
from didanchor.overlay.notifier import OverlayNotifier
from didanchor.registry.index import MemoryLookupIndex
from didanchor.registry.wallet import HTTPWalletClient
from didanchor.server.services import build_services
from didanchor.server.services import certifier_wallet as load_certifier_wallet

CERTIFIER_KEY = "a3" * 32


class TestCertifierWallet:
    def test_configured_key(self, certifier_wallet):
        config = CoreSettings(_env_file=None, server_private_key=CERTIFIER_KEY)
        assert load_certifier_wallet(config).identity_key == certifier_wallet.identity_key

    def test_ephemeral_key_warns(self, caplog):
        config = CoreSettings(_env_file=None, server_private_key=None)
        with caplog.at_level(logging.WARNING, logger="didanchor.server.services"):
            first = load_certifier_wallet(config)
        second = load_certifier_wallet(config)

        assert first.identity_key != second.identity_key
        assert any("ephemeral certifier key" in r.getMessage() for r in caplog.records)

    def test_invalid_key(self):
        with pytest.raises(ConfigException):
            load_certifier_wallet(CoreSettings(_env_file=None, server_private_key="not-hex"))


class TestBuildServices:
    def test_with_overlay(self, clean_env):
        config = CoreSettings(
            _env_file=None,
            overlay_url="https://overlay.example.com",
            server_private_key=CERTIFIER_KEY,
            topic="tm_test",
            did_scheme="test",
        )
        services = build_services(config)

        assert services.config is config
        assert services.registry.topic == "tm_test"
        assert services.registry.scheme == "test"
        assert isinstance(services.registry.wallet, HTTPWalletClient)
        assert services.registry.transaction_creator is services.registry.wallet
        assert isinstance(services.registry.lookup_client, OverlayLookupClient)
        assert isinstance(services.registry.notifier, OverlayNotifier)
        assert isinstance(services.registry.lookup_index, MemoryLookupIndex)
        assert services.issuer.nonce_tracker is not None

    def test_without_overlay(self, clean_env, caplog):
        config = CoreSettings(_env_file=None, overlay_url=None, server_private_key=CERTIFIER_KEY)
        with caplog.at_level(logging.WARNING, logger="didanchor.server.services"):
            services = build_services(config)

        assert services.registry.lookup_client is None
        assert services.registry.notifier is None
        assert any("DIDANCHOR_OVERLAY_URL not set" in r.getMessage() for r in caplog.records)

    def test_defaults_from_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("DIDANCHOR_TOPIC", "tm_env")
        monkeypatch.setenv("DIDANCHOR_SERVER_PRIVATE_KEY", CERTIFIER_KEY)
        assert build_services().registry.topic == "tm_env"

    def test_nonce_tracker_from_config(self, clean_env):
        config = CoreSettings(
            _env_file=None, server_private_key=CERTIFIER_KEY, nonce_ttl_seconds=120, max_tracked_nonces=10
        )
        tracker = build_services(config).issuer.nonce_tracker

        assert tracker.ttl_seconds == 120
        for n in range(20):
            tracker.record_nonce("key-a", f"nonce-{n}")
        assert tracker.nonce_count() == 10
