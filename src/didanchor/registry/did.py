# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""DID identifier grammar for ledger-anchored DIDs.

Two surface forms exist:

- Creation form (4 segments): ``did:<scheme>:<topic>:<serial-hex>``
- Updated form (5 segments): ``did:<scheme>:<topic>:<txid>:<outputIndex>``

Parsing yields a :class:`CreationForm` or an :class:`UpdatedForm`; any other
segment count is a :class:`FormatError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..core.exceptions import FormatError

DID_PREFIX = "did"

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


@dataclass(frozen=True)
class CreationForm:
    """A DID as issued by ``create``: addressed by its serial number."""

    scheme: str
    topic: str
    serial_number: str

    def __str__(self) -> str:
        return format_creation_did(self.scheme, self.topic, self.serial_number)


@dataclass(frozen=True)
class UpdatedForm:
    """A DID as issued by ``update``: addressed by a ledger outpoint."""

    scheme: str
    topic: str
    txid: str
    output_index: int

    @property
    def outpoint(self) -> str:
        return f"{self.txid}.{self.output_index}"

    def __str__(self) -> str:
        return format_updated_did(self.scheme, self.topic, self.txid, self.output_index)


ParsedDID = CreationForm | UpdatedForm


def format_creation_did(scheme: str, topic: str, serial_hex: str) -> str:
    return f"{DID_PREFIX}:{scheme}:{topic}:{serial_hex}"


def format_updated_did(scheme: str, topic: str, txid: str, output_index: int) -> str:
    return f"{DID_PREFIX}:{scheme}:{topic}:{txid}:{output_index}"


def parse_did(did: str, scheme: str | None = None) -> ParsedDID:
    """Parse a DID string into its tagged form.

    Args:
        did: The identifier to parse.
        scheme: If given, the method segment must equal it.

    Raises:
        FormatError: Wrong segment count, wrong prefix or scheme, empty
            segments, non-hex serial/txid, or a bad output index.
    """
    if not isinstance(did, str):
        raise FormatError("DID must be a string")

    parts = did.split(":")
    if len(parts) not in (4, 5):
        raise FormatError(f"Invalid DID format: expected 4 or 5 segments, got {len(parts)}", did=did)
    if parts[0] != DID_PREFIX:
        raise FormatError(f"Invalid DID format: must start with '{DID_PREFIX}:'", did=did)
    if any(not part for part in parts):
        raise FormatError("Invalid DID format: empty segment", did=did)
    if scheme is not None and parts[1] != scheme:
        raise FormatError(f"Invalid DID scheme: expected '{scheme}', got '{parts[1]}'", did=did)

    if len(parts) == 4:
        serial = parts[3]
        if not _HEX_RE.match(serial):
            raise FormatError("Invalid DID format: serial number must be hex", did=did)
        return CreationForm(scheme=parts[1], topic=parts[2], serial_number=serial.lower())

    txid, index = parts[3], parts[4]
    if not _HEX_RE.match(txid):
        raise FormatError("Invalid DID format: txid must be hex", did=did)
    if not index.isdigit():
        raise FormatError("Invalid DID format: output index must be a non-negative integer", did=did)
    return UpdatedForm(scheme=parts[1], topic=parts[2], txid=txid.lower(), output_index=int(index))


def parse_creation_did(did: str, scheme: str | None = None) -> CreationForm:
    """Parse a DID that must be in creation (serial-number) form."""
    parsed = parse_did(did, scheme)
    if not isinstance(parsed, CreationForm):
        raise FormatError("Invalid DID format: expected did:<scheme>:<topic>:<serialNumber>", did=did)
    return parsed


def parse_updated_did(did: str, scheme: str | None = None) -> UpdatedForm:
    """Parse a DID that must be in updated (outpoint) form.

    A creation-form DID cannot be updated directly; resolve it to its
    outpoint first.
    """
    parsed = parse_did(did, scheme)
    if not isinstance(parsed, UpdatedForm):
        raise FormatError("Invalid DID format: expected did:<scheme>:<topic>:<txid>:<outputIndex>", did=did)
    return parsed
