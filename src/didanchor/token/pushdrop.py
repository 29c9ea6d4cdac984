# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""PushDrop locking tokens.

A PushDrop output commits application data to the ledger while remaining
spendable by a single key::

    before:  <pubkey> OP_CHECKSIG <field 0> ... <field n> <drops>
    after:   <field 0> ... <field n> <drops> <pubkey> OP_CHECKSIG

``<drops>`` is one ``OP_2DROP`` per pair of fields plus an ``OP_DROP`` for
an odd remainder. When a signature is requested it is pushed as the last
field and covers the concatenation of the preceding fields. Script assembly
is ``bsv-sdk``'s :func:`build_lock_before_pushdrop`; the key and signature
come from the wallet, so the lock matches what a wallet derives for the same
protocol, key id and counterparty.

Fields are pushed minimally, so an empty field and ``b"\\x00"`` both
encode as ``OP_0`` and decode as ``b"\\x00"``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from bsv.constants import OpCode
from bsv.script import Script, ScriptChunk
from bsv.transaction.pushdrop import build_lock_before_pushdrop

from ..core.exceptions import EncodingError
from ..crypto.keys import KeyringWallet, ProtocolID, SigningWallet
from .script import opcode, parse_script, pushed_value

logger = logging.getLogger(__name__)

LockPosition = Literal["before", "after"]

MAX_FIELDS = 256
MAX_FIELD_BYTES = 1 << 20

COMPRESSED_KEY_BYTES = 33
MAX_DIRECT_PUSH = 0x4B


@dataclass
class LockingToken:
    """Decoded contents of a PushDrop locking script."""

    locking_public_key: str
    fields: list[bytes] = field(default_factory=list)
    signature: bytes | None = None
    lock_position: LockPosition = "before"

    @property
    def signed_payload(self) -> bytes:
        return b"".join(self.fields)


def _check_fields(fields: list[bytes]) -> None:
    if not fields:
        raise EncodingError("PushDrop requires at least one field")
    if len(fields) > MAX_FIELDS:
        raise EncodingError(f"Too many fields: {len(fields)} > {MAX_FIELDS}")
    for index, value in enumerate(fields):
        if not isinstance(value, (bytes, bytearray)):
            raise EncodingError(f"Field {index} is not bytes")
        if len(value) > MAX_FIELD_BYTES:
            raise EncodingError(f"Field {index} is {len(value)} bytes, limit is {MAX_FIELD_BYTES}")


def _is_key_push(chunk: ScriptChunk) -> bool:
    return chunk.data is not None and len(chunk.data) == COMPRESSED_KEY_BYTES


def _field_value(chunk: ScriptChunk) -> bytes:
    op = opcode(chunk)
    if 0 < op <= MAX_DIRECT_PUSH and len(chunk.data or b"") != op:
        raise EncodingError("Push runs past end of script")
    try:
        return pushed_value(chunk)
    except EncodingError as e:
        raise EncodingError(f"Unexpected opcode 0x{op:02x} in PushDrop fields") from e


class PushDrop:
    """Builds and reads PushDrop tokens using a wallet for keys and signatures."""

    def __init__(self, wallet: SigningWallet) -> None:
        self.wallet = wallet

    async def lock(
        self,
        fields: list[bytes],
        protocol_id: ProtocolID,
        key_id: str,
        counterparty: str,
        for_self: bool = False,
        include_signature: bool = True,
        lock_position: LockPosition = "before",
    ) -> Script:
        """Encode ``fields`` into a locking script.

        Raises:
            EncodingError: The field list is empty, too long, holds an
                oversized field, or the lock position is unknown.
        """
        _check_fields(fields)
        if lock_position not in ("before", "after"):
            raise EncodingError(f"Unknown lock position: {lock_position!r}")

        public_key = await self.wallet.get_public_key(
            protocol_id=protocol_id,
            key_id=key_id,
            counterparty=counterparty,
            for_self=for_self,
        )

        data_fields = [bytes(value) for value in fields]
        signature = None
        if include_signature:
            signature = await self.wallet.create_signature(
                b"".join(data_fields),
                protocol_id=protocol_id,
                key_id=key_id,
                counterparty=counterparty,
            )

        script_hex = build_lock_before_pushdrop(
            data_fields,
            bytes.fromhex(public_key),
            include_signature=include_signature,
            signature=signature,
            lock_position=lock_position,
        )
        logger.debug(
            f"Built PushDrop lock: {len(fields)} field(s), signature={include_signature}, position={lock_position}"
        )
        return Script(script_hex)

    @staticmethod
    def decode(script: Script | str | bytes, include_signature: bool = True) -> LockingToken:
        """Recover the locking key, data fields and signature from a script.

        Args:
            script: A script produced by :meth:`lock`, parsed or as hex.
            include_signature: Whether the last pushed field is a signature.

        Raises:
            EncodingError: The script does not have PushDrop shape.
        """
        chunks = parse_script(script).chunks
        if len(chunks) < 3:
            raise EncodingError("Script too short to be a PushDrop token")

        if _is_key_push(chunks[0]) and chunks[1].op == OpCode.OP_CHECKSIG:
            position: LockPosition = "before"
            key_chunk = chunks[0]
            body = chunks[2:]
        elif _is_key_push(chunks[-2]) and chunks[-1].op == OpCode.OP_CHECKSIG:
            position = "after"
            key_chunk = chunks[-2]
            body = chunks[:-2]
        else:
            raise EncodingError("Script has no P2PK lock at either end")

        values: list[bytes] = []
        for chunk in body:
            if chunk.op in (OpCode.OP_DROP, OpCode.OP_2DROP):
                break
            values.append(_field_value(chunk))

        signature = None
        if include_signature:
            if not values:
                raise EncodingError("Token carries no signature field")
            signature = values.pop()
        if not values:
            raise EncodingError("Token carries no data fields")

        return LockingToken(
            locking_public_key=(key_chunk.data or b"").hex(),
            fields=values,
            signature=signature,
            lock_position=position,
        )

    async def verify(
        self,
        token: LockingToken,
        protocol_id: ProtocolID,
        key_id: str,
        counterparty: str,
        for_self: bool = True,
    ) -> bool:
        """Check the token's key and detached signature against the wallet's derivation."""
        if token.signature is None:
            return False
        if not isinstance(self.wallet, KeyringWallet):
            raise EncodingError("Wallet cannot verify signatures")
        expected_key = await self.wallet.get_public_key(
            protocol_id=protocol_id, key_id=key_id, counterparty=counterparty, for_self=for_self
        )
        if expected_key != token.locking_public_key:
            return False
        return await self.wallet.verify_signature(
            token.signed_payload,
            token.signature,
            protocol_id=protocol_id,
            key_id=key_id,
            counterparty=counterparty,
            for_self=for_self,
        )
