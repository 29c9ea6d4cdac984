# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Overlay network clients: DID lookup and transaction submission."""

from .lookup import LOOKUP_SERVICE, OverlayLookupClient, parse_output_list
from .notifier import OverlayNotifier

__all__ = [
    "LOOKUP_SERVICE",
    "OverlayLookupClient",
    "OverlayNotifier",
    "parse_output_list",
]
