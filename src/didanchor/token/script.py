# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Script helpers over ``bsv-sdk``'s :class:`~bsv.script.Script`.

Builders for the two non-token outputs the registry writes, P2PK locks and
``OP_FALSE OP_RETURN`` data carriers, plus the reverse mapping from a parsed
chunk to the bytes it leaves on the stack.
"""

from __future__ import annotations

from bsv.constants import OpCode
from bsv.script import Script, ScriptChunk
from bsv.utils import encode_pushdata

from ..core.exceptions import EncodingError

OP_1 = OpCode.OP_1[0]
OP_16 = OpCode.OP_16[0]


def opcode(chunk: ScriptChunk) -> int:
    """The chunk's opcode as an integer."""
    return chunk.op[0]


def pushed_value(chunk: ScriptChunk) -> bytes:
    """The byte string a push chunk leaves on the stack.

    Minimal encodings decode the way wallets decode them: ``OP_0`` is a
    single zero byte, ``OP_1NEGATE`` is ``0x81`` and ``OP_1``..``OP_16``
    are the single byte they encode.
    """
    if chunk.data is not None:
        return chunk.data
    op = opcode(chunk)
    if chunk.op == OpCode.OP_0:
        return b"\x00"
    if chunk.op == OpCode.OP_1NEGATE:
        return b"\x81"
    if OP_1 <= op <= OP_16:
        return bytes([op - OP_1 + 1])
    raise EncodingError(f"Opcode 0x{op:02x} does not push data")


def parse_script(value: Script | str | bytes) -> Script:
    """Accept a parsed script, its hex or its raw bytes."""
    if isinstance(value, Script):
        return value
    try:
        return Script(value)
    except (TypeError, ValueError) as e:
        raise EncodingError("Script is not valid hex") from e


def build_tagged_data_script(*items: str) -> Script:
    """``OP_FALSE OP_RETURN <item>...`` with each item pushed as UTF-8."""
    body = b"".join(encode_pushdata(item.encode("utf-8")) for item in items)
    return Script(OpCode.OP_FALSE + OpCode.OP_RETURN + body)


def read_tagged_data(script: Script | str | bytes) -> list[bytes]:
    """Items pushed after ``OP_FALSE OP_RETURN``.

    Raises:
        EncodingError: The script is not a data carrier.
    """
    chunks = parse_script(script).chunks
    if len(chunks) != 2 or chunks[0].op != OpCode.OP_FALSE or chunks[1].op != OpCode.OP_RETURN:
        raise EncodingError("Script is not an OP_FALSE OP_RETURN data carrier")
    payload = chunks[1].data or b""
    return [pushed_value(chunk) for chunk in Script(payload).chunks]


def build_p2pk_script(public_key_hex: str) -> Script:
    """``<pubkey> OP_CHECKSIG``."""
    return Script(encode_pushdata(bytes.fromhex(public_key_hex)) + OpCode.OP_CHECKSIG)
