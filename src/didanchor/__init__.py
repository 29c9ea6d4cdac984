# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""didanchor - ledger-anchored DID registry and certificate issuer.

A DID is anchored by a PushDrop token output on an overlay topic. The
token's single data field is a serial number derived from the document,
and the DID is ``did:<scheme>:<topic>:<serial>``. Updates spend the
previous output and name the new one: ``did:<scheme>:<topic>:<txid>:1``.

Alongside the registry, a certifier issues identity certificates over
encrypted fields after a mutual-nonce exchange with the subject.

CLI entry point: ``didanchor``
"""

__version__ = "0.1.0"
