# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Wiring of registry and issuer from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..certificates.issuer import CertificateIssuer
from ..certificates.nonce import NonceTracker
from ..core.config import CoreSettings, get_config
from ..crypto.keys import KeyWallet
from ..overlay.lookup import OverlayLookupClient
from ..overlay.notifier import OverlayNotifier
from ..registry.index import get_lookup_index
from ..registry.registry import DIDRegistry
from ..registry.wallet import HTTPWalletClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Long-lived objects shared by request handlers."""

    registry: DIDRegistry
    issuer: CertificateIssuer
    config: CoreSettings


def certifier_wallet(config: CoreSettings) -> KeyWallet:
    """The certifier's key, from ``DIDANCHOR_SERVER_PRIVATE_KEY`` when set."""
    if config.server_private_key:
        return KeyWallet.from_hex(config.server_private_key)
    wallet = KeyWallet()
    logger.warning(
        "DIDANCHOR_SERVER_PRIVATE_KEY not set; using an ephemeral certifier key "
        f"{wallet.identity_key}. Certificates will not be verifiable after restart."
    )
    return wallet


def build_services(config: CoreSettings | None = None) -> Services:
    """Build services from configuration.

    The remote wallet both funds DID transactions and holds the keys that
    lock them; the certifier signs with its own local key.

    Raises:
        ConfigException: The private key or lookup index setting is invalid.
    """
    config = config or get_config()
    remote_wallet = HTTPWalletClient(config.wallet_url)

    if config.overlay_url:
        lookup_client: OverlayLookupClient | None = OverlayLookupClient(config.overlay_url)
        notifier: OverlayNotifier | None = OverlayNotifier(config.overlay_url)
    else:
        logger.warning("DIDANCHOR_OVERLAY_URL not set; overlay lookup and notification disabled")
        lookup_client = None
        notifier = None

    registry = DIDRegistry(
        wallet=remote_wallet,
        transaction_creator=remote_wallet,
        topic=config.topic,
        scheme=config.did_scheme,
        lookup_index=get_lookup_index(),
        lookup_client=lookup_client,
        notifier=notifier,
    )
    nonce_tracker = NonceTracker(ttl_seconds=config.nonce_ttl_seconds, max_entries=config.max_tracked_nonces)
    issuer = CertificateIssuer(certifier_wallet(config), nonce_tracker=nonce_tracker)
    return Services(registry=registry, issuer=issuer, config=config)
