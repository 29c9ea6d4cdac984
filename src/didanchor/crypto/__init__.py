# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Keying operations: derived keys, signatures, HMACs and symmetric encryption."""

from .keys import (
    ANYONE,
    SELF,
    KeyringWallet,
    KeyWallet,
    ProtocolID,
    SigningWallet,
    to_counterparty,
    to_protocol,
)

__all__ = [
    "ANYONE",
    "SELF",
    "KeyWallet",
    "KeyringWallet",
    "ProtocolID",
    "SigningWallet",
    "to_counterparty",
    "to_protocol",
]
