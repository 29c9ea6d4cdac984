# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Identity certificates signed by a certifier.

The signed payload is ``bsv-sdk``'s certificate binary form without the
signature:

    type (32 bytes, from base64)
    serialNumber (32 bytes, from base64)
    subject (33 bytes, compressed public key)
    certifier (33 bytes, compressed public key)
    revocation txid (32 bytes) || output index (uint32 LE)
    varint field count, then per field in name order:
        varint len || name (utf-8) || varint len || value (utf-8)
    signature (DER), when included

The certifier signs with its child key for protocol
``(2, "certificate signature")``, key id ``"<type> <serialNumber>"`` and
counterparty ``anyone``, so anybody can derive the verification key from the
certifier's identity key alone.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Any

from bsv.auth.certificate import Certificate as WireCertificate
from bsv.auth.certificate import Outpoint
from bsv.keys import PublicKey

from ..core.exceptions import EncodingError, ValidationError
from ..crypto.keys import ANYONE, KeyWallet, ProtocolID, SigningWallet

logger = logging.getLogger(__name__)

SIGNATURE_PROTOCOL_ID: ProtocolID = (2, "certificate signature")

# Placeholder outpoint for certificates without a revocation output
UNREVOCABLE_OUTPOINT = "0" * 64 + ".0"

MAX_OUTPUT_INDEX = 0xFFFFFFFF


def _check_b64(value: str, name: str, size: int) -> None:
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"Certificate {name} is not valid base64") from e
    if len(raw) != size:
        raise EncodingError(f"Certificate {name} must decode to {size} bytes")


def _public_key(value: str, name: str) -> PublicKey:
    try:
        return PublicKey(value)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Certificate {name} is not a compressed public key") from e


def _hex(value: str, name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise EncodingError(f"Certificate {name} is not valid hex") from e


def _outpoint(value: str) -> Outpoint:
    txid, sep, index = value.partition(".")
    if not sep or not index.isdigit() or len(txid) != 64:
        raise EncodingError(f"Revocation outpoint must be '<txid>.<index>', got '{value}'")
    _hex(txid, "revocation txid")
    if int(index) > MAX_OUTPUT_INDEX:
        raise EncodingError(f"Revocation output index out of range: {index}")
    return Outpoint(txid, int(index))


@dataclass
class Certificate:
    """A certificate over encrypted field values.

    ``fields`` hold base64 ciphertexts; the certifier never stores or signs
    plaintext. ``signature`` is DER in hex once signed.
    """

    type: str
    serial_number: str
    subject: str
    certifier: str
    revocation_outpoint: str = UNREVOCABLE_OUTPOINT
    fields: dict[str, str] = field(default_factory=dict)
    signature: str | None = None

    @property
    def signing_key_id(self) -> str:
        return f"{self.type} {self.serial_number}"

    def to_wire(self) -> WireCertificate:
        """The ``bsv-sdk`` form of this certificate, fields in name order."""
        _check_b64(self.type, "type", 32)
        _check_b64(self.serial_number, "serialNumber", 32)
        return WireCertificate(
            self.type,
            self.serial_number,
            _public_key(self.subject, "subject"),
            _public_key(self.certifier, "certifier"),
            _outpoint(self.revocation_outpoint),
            {name: self.fields[name] for name in sorted(self.fields)},
            _hex(self.signature, "signature") if self.signature else None,
        )

    def to_binary(self, include_signature: bool = True) -> bytes:
        return self.to_wire().to_binary(include_signature=include_signature)

    async def sign(self, wallet: SigningWallet) -> None:
        """Sign as the certifier. The certifier must be the wallet's identity."""
        if self.signature:
            raise ValidationError("Certificate is already signed", field="signature")
        certifier = await wallet.get_public_key(identity_key=True)
        if certifier != self.certifier:
            raise ValidationError("Certifier does not match the signing wallet", field="certifier")
        signature = await wallet.create_signature(
            self.to_binary(include_signature=False),
            SIGNATURE_PROTOCOL_ID,
            self.signing_key_id,
            ANYONE,
        )
        self.signature = signature.hex()
        logger.debug(f"Signed certificate {self.serial_number} for {self.subject}")

    async def verify(self) -> bool:
        """Check the certifier's signature from its identity key alone."""
        if not self.signature:
            return False
        return await KeyWallet.anyone().verify_signature(
            self.to_binary(include_signature=False),
            _hex(self.signature, "signature"),
            SIGNATURE_PROTOCOL_ID,
            self.signing_key_id,
            self.certifier,
            for_self=False,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "serialNumber": self.serial_number,
            "subject": self.subject,
            "certifier": self.certifier,
            "revocationOutpoint": self.revocation_outpoint,
            "fields": dict(self.fields),
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Certificate:
        return cls(
            type=data["type"],
            serial_number=data["serialNumber"],
            subject=data["subject"],
            certifier=data["certifier"],
            revocation_outpoint=data.get("revocationOutpoint", UNREVOCABLE_OUTPOINT),
            fields=dict(data.get("fields", {})),
            signature=data.get("signature"),
        )
