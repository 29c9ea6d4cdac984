# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Transaction collaborator: the wallet that funds, signs and broadcasts.

The registry only describes the transaction it wants (:class:`CreateActionArgs`);
building, funding and broadcasting it is the wallet's job. :class:`HTTPWalletClient`
talks to a wallet exposing the BRC-100 HTTP interface (``/createAction``,
``/getPublicKey``, ``/createSignature``) and also satisfies the token encoder's
:class:`~didanchor.crypto.keys.SigningWallet` protocol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import aiohttp

from ..core.exceptions import TransactionError
from ..crypto.keys import ANYONE, SELF, ProtocolID

logger = logging.getLogger(__name__)


@dataclass
class ActionInput:
    """An output of a previous transaction to spend."""

    outpoint: str
    input_description: str

    def to_dict(self) -> dict[str, Any]:
        return {"outpoint": self.outpoint, "inputDescription": self.input_description}


@dataclass
class ActionOutput:
    """An output to create, with its locking script in hex."""

    locking_script: str
    satoshis: int
    output_description: str
    basket: str | None = None
    custom_instructions: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "lockingScript": self.locking_script,
            "satoshis": self.satoshis,
            "outputDescription": self.output_description,
        }
        if self.basket is not None:
            out["basket"] = self.basket
        if self.custom_instructions is not None:
            out["customInstructions"] = self.custom_instructions
        return out


@dataclass
class CreateActionArgs:
    """Description of a transaction for the wallet to build."""

    description: str
    outputs: list[ActionOutput] = field(default_factory=list)
    inputs: list[ActionInput] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    randomize_outputs: bool = True

    def to_dict(self) -> dict[str, Any]:
        args: dict[str, Any] = {
            "description": self.description,
            "outputs": [output.to_dict() for output in self.outputs],
            "labels": list(self.labels),
            "options": {"randomizeOutputs": self.randomize_outputs},
        }
        if self.inputs:
            args["inputs"] = [inp.to_dict() for inp in self.inputs]
        return args


@dataclass
class CreateActionResult:
    """What the wallet returns: the new txid and, when available, the raw transaction."""

    txid: str
    tx: bytes | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreateActionResult:
        if not isinstance(data, dict) or not data.get("txid"):
            raise TransactionError("Wallet response carries no txid")
        return cls(txid=data["txid"], tx=_to_bytes(data.get("tx")))

    def to_dict(self) -> dict[str, Any]:
        return {"txid": self.txid, "tx": self.tx.hex() if self.tx is not None else None}


@runtime_checkable
class TransactionCreator(Protocol):
    """Builds, funds, signs and broadcasts a described transaction."""

    async def create_action(self, args: CreateActionArgs) -> CreateActionResult: ...


def _to_bytes(value: Any) -> bytes | None:
    """Wallets return binary either as a list of byte values or as hex."""
    if value is None:
        return None
    if isinstance(value, list):
        return bytes(value)
    if isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError as e:
            raise TransactionError("Wallet returned binary data that is not hex") from e
    raise TransactionError(f"Unexpected binary encoding from wallet: {type(value).__name__}")


class HTTPWalletClient:
    """Client for a wallet's HTTP interface.

    Args:
        wallet_url: Base URL, e.g. ``http://localhost:3321``.
        originator: Value of the ``Originator`` header identifying this app.
    """

    def __init__(self, wallet_url: str, originator: str = "didanchor") -> None:
        self.wallet_url = wallet_url.rstrip("/")
        self.originator = originator

    async def _call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.wallet_url}/{method}"
        headers = {"Originator": self.originator}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, json=body, headers=headers) as response:
                    if not 200 <= response.status < 300:
                        logger.warning(f"Wallet {method} returned status {response.status}")
                        raise TransactionError(f"Wallet {method} failed with status {response.status}", status=response.status)
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise TransactionError(f"Wallet {method} returned a non-JSON body") from e
        except aiohttp.ClientError as e:
            raise TransactionError(f"Network error calling wallet {method}: {e}") from e

        if not isinstance(data, dict):
            raise TransactionError(f"Wallet {method} returned a malformed body")
        if str(data.get("status", "")).lower() == "error":
            raise TransactionError(f"Wallet {method} failed: {data.get('description', 'unknown error')}")
        return data

    async def create_action(self, args: CreateActionArgs) -> CreateActionResult:
        data = await self._call("createAction", args.to_dict())
        return CreateActionResult.from_dict(data)

    async def get_public_key(
        self,
        protocol_id: ProtocolID | None = None,
        key_id: str | None = None,
        counterparty: str = SELF,
        for_self: bool = False,
        identity_key: bool = False,
    ) -> str:
        body: dict[str, Any] = {"identityKey": True} if identity_key else {
            "protocolID": list(protocol_id) if protocol_id else None,
            "keyID": key_id,
            "counterparty": counterparty,
            "forSelf": for_self,
        }
        data = await self._call("getPublicKey", body)
        if "publicKey" not in data:
            raise TransactionError("Wallet getPublicKey response carries no publicKey")
        return data["publicKey"]

    async def create_signature(
        self,
        data: bytes,
        protocol_id: ProtocolID,
        key_id: str,
        counterparty: str = ANYONE,
    ) -> bytes:
        body = {
            "data": list(data),
            "protocolID": list(protocol_id),
            "keyID": key_id,
            "counterparty": counterparty,
        }
        result = await self._call("createSignature", body)
        signature = _to_bytes(result.get("signature"))
        if signature is None:
            raise TransactionError("Wallet createSignature response carries no signature")
        return signature
