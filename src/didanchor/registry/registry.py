# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""DID Registry: create, resolve and update ledger-anchored DID documents.

A DID is anchored by a PushDrop output whose single data field is a
content-derived serial number. The registry then records the serial number
to outpoint mapping in a lookup index and tells the overlay about the new
transaction. Both of those steps are best-effort: once the anchor exists a
failure there is logged and reported in the result, never raised, which
leaves a visible gap between ledger and index.

Resolution is index-driven: without a local index entry the registry does
not search the overlay.
"""

from __future__ import annotations

import hashlib
import json
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..core.exceptions import BroadcastError, ProviderError, ValidationError
from ..crypto.keys import SELF, ProtocolID, SigningWallet
from ..overlay.lookup import OverlayLookupClient
from ..overlay.notifier import OverlayNotifier
from ..token.pushdrop import PushDrop
from ..token.script import build_p2pk_script, build_tagged_data_script
from .did import format_creation_did, format_updated_did, parse_creation_did, parse_updated_did
from .document import DIDDocument, VerificationMethod
from .index import AnchorRecord, LookupIndex
from .wallet import ActionInput, ActionOutput, CreateActionArgs, CreateActionResult, TransactionCreator

logger = logging.getLogger(__name__)

# Protocol id for DID tokens; matches the overlay topic manager
DID_PROTOCOL_ID: ProtocolID = (0, "tm did")

DID_BASKET = "bsv-did"
ANCHOR_SATOSHIS = 1
ANCHOR_OUTPUT_INDEX = 0
UPDATED_OUTPUT_INDEX = 1

INDEX_WRITE = "index_write"
OVERLAY_NOTIFICATION = "overlay_notification"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _random_nonce() -> str:
    return secrets.token_hex(8)


def compute_serial_number(document: dict[str, Any], timestamp_ms: int, nonce: str) -> bytes:
    """SHA-256 over the document salted with a timestamp and a random nonce.

    Identical documents anchored at different times (or with different
    nonces) get different serial numbers.
    """
    payload = {**document, "timestamp": timestamp_ms, "nonce": nonce}
    return hashlib.sha256(json.dumps(payload, separators=(",", ":")).encode("utf-8")).digest()


def decode_document_field(value: Any) -> Any:
    """Decode an overlay output field as a DID document.

    JSON objects (or strings holding one) become :class:`DIDDocument`;
    anything else, including objects that are not well-formed documents,
    is passed through as parsed.
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return value
    if isinstance(value, dict):
        try:
            return DIDDocument.from_dict(value)
        except ValidationError as e:
            logger.warning(f"Anchored value is not a well-formed DID document: {e.message}")
    return value


@dataclass
class SideEffectOutcome:
    """Result of a best-effort step that runs after the anchor exists."""

    name: str
    succeeded: bool = False
    skipped: bool = False
    error: str | None = None

    @classmethod
    def ok(cls, name: str) -> SideEffectOutcome:
        return cls(name=name, succeeded=True)

    @classmethod
    def skip(cls, name: str, reason: str) -> SideEffectOutcome:
        return cls(name=name, skipped=True, error=reason)

    @classmethod
    def failed(cls, name: str, exc: BaseException) -> SideEffectOutcome:
        return cls(name=name, error=f"{type(exc).__name__}: {exc}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "error": self.error,
        }


@dataclass
class CreateResult:
    """Outcome of :meth:`DIDRegistry.create`."""

    did: str
    transaction: CreateActionResult
    document: DIDDocument
    serial_number: str
    index_write: SideEffectOutcome
    overlay_notification: SideEffectOutcome

    def to_dict(self) -> dict[str, Any]:
        return {
            "did": self.did,
            "txid": self.transaction.txid,
            "didDocument": self.document.to_dict(),
            "sideEffects": {
                INDEX_WRITE: self.index_write.to_dict(),
                OVERLAY_NOTIFICATION: self.overlay_notification.to_dict(),
            },
        }


@dataclass
class UpdateResult:
    """Outcome of :meth:`DIDRegistry.update`."""

    did: str
    txid: str
    transaction: CreateActionResult

    def to_dict(self) -> dict[str, Any]:
        return {"did": self.did, "txid": self.txid}


class DIDRegistry:
    """Creates, resolves and updates DIDs anchored on an overlay topic.

    Args:
        wallet: Supplies derived keys and signatures for the PushDrop token.
        transaction_creator: Builds, funds, signs and broadcasts transactions.
        topic: Overlay topic; also the third DID segment.
        scheme: DID method name; the second DID segment.
        lookup_index: Serial number index. Without one, ``resolve`` finds nothing.
        lookup_client: Overlay lookup client, used when the index holds an
            outpoint but no cached document.
        notifier: Overlay notifier for newly anchored transactions.
        clock: Millisecond timestamp source used to salt serial numbers.
        nonce_factory: Random nonce source used to salt serial numbers.
    """

    def __init__(
        self,
        wallet: SigningWallet,
        transaction_creator: TransactionCreator,
        topic: str,
        scheme: str = "bsv",
        lookup_index: LookupIndex | None = None,
        lookup_client: OverlayLookupClient | None = None,
        notifier: OverlayNotifier | None = None,
        clock: Callable[[], int] = _timestamp_ms,
        nonce_factory: Callable[[], str] = _random_nonce,
    ) -> None:
        self.wallet = wallet
        self.transaction_creator = transaction_creator
        self.topic = topic
        self.scheme = scheme
        self.lookup_index = lookup_index
        self.lookup_client = lookup_client
        self.notifier = notifier
        self._clock = clock
        self._nonce_factory = nonce_factory

    # -------------------------------------------------------------------------
    # create
    # -------------------------------------------------------------------------

    async def create(
        self,
        document: DIDDocument | dict[str, Any],
        public_key_jwk: dict[str, Any] | None = None,
        key_id: str | None = None,
    ) -> CreateResult:
        """Anchor a new DID document.

        Raises:
            ValidationError: The document has the wrong shape.
            EncodingError: The serial number could not be encoded.
            TransactionError: The wallet could not build or fund the anchor.
        """
        if isinstance(document, dict):
            document = DIDDocument.from_dict(document)
        normalized = document.with_default_context()
        normalized.id = None
        base = normalized.to_dict()

        serial = compute_serial_number(base, self._clock(), self._nonce_factory())
        serial_hex = serial.hex()
        did = format_creation_did(self.scheme, self.topic, serial_hex)
        logger.info(f"Creating DID {did}")

        lock = await PushDrop(self.wallet).lock(
            [serial],
            DID_PROTOCOL_ID,
            serial_hex,
            SELF,
            for_self=True,
            include_signature=True,
            lock_position="before",
        )

        custom_instructions = json.dumps(
            {
                "protocolID": list(DID_PROTOCOL_ID),
                "counterparty": SELF,
                "keyID": serial_hex,
                "fields": [list(serial)],
                "type": "PushDrop",
                "didDocument": base,
            }
        )
        transaction = await self.transaction_creator.create_action(
            CreateActionArgs(
                description="Create DID transaction with overlay anchor",
                outputs=[
                    ActionOutput(
                        locking_script=lock.hex(),
                        satoshis=ANCHOR_SATOSHIS,
                        output_description="DID PushDrop Token",
                        basket=DID_BASKET,
                        custom_instructions=custom_instructions,
                    )
                ],
                labels=[DID_BASKET, "create"],
                randomize_outputs=False,
            )
        )
        logger.info(f"DID {did} anchored at {transaction.txid}.{ANCHOR_OUTPUT_INDEX}")

        final_document = DIDDocument(id=did, context=list(normalized.context), extra=dict(normalized.extra))
        if public_key_jwk:
            method_id = key_id or f"{did}#key-1"
            final_document.verification_method = [
                VerificationMethod(id=method_id, controller=did, public_key_jwk=public_key_jwk)
            ]
            final_document.authentication = [method_id]
            final_document.assertion_method = [method_id]

        record = AnchorRecord(
            serial_number=serial_hex,
            txid=transaction.txid,
            output_index=ANCHOR_OUTPUT_INDEX,
            topic=self.topic,
            document=final_document,
            created_at=datetime.now(UTC),
        )
        index_write = await self._persist(record)
        overlay_notification = await self._notify(transaction, serial_hex)

        return CreateResult(
            did=did,
            transaction=transaction,
            document=final_document,
            serial_number=serial_hex,
            index_write=index_write,
            overlay_notification=overlay_notification,
        )

    async def _persist(self, record: AnchorRecord) -> SideEffectOutcome:
        if self.lookup_index is None:
            logger.info("No lookup index configured, skipping DID lookup storage")
            return SideEffectOutcome.skip(INDEX_WRITE, "no lookup index configured")
        try:
            await self.lookup_index.put(record)
        except Exception as e:
            logger.error(
                f"Failed to store DID lookup for serial {record.serial_number}; "
                f"anchor {record.outpoint} exists but is not indexed: {e}"
            )
            return SideEffectOutcome.failed(INDEX_WRITE, e)
        logger.debug(f"Stored DID lookup {record.serial_number} -> {record.outpoint}")
        return SideEffectOutcome.ok(INDEX_WRITE)

    async def _notify(self, transaction: CreateActionResult, serial_hex: str) -> SideEffectOutcome:
        if self.notifier is None:
            return SideEffectOutcome.skip(OVERLAY_NOTIFICATION, "no overlay notifier configured")
        if transaction.tx is None:
            logger.warning(f"Wallet returned no raw transaction for {transaction.txid}; overlay not notified")
            return SideEffectOutcome.skip(OVERLAY_NOTIFICATION, "wallet returned no raw transaction")
        try:
            await self.notifier.notify(self.topic, transaction.tx, serial_hex, transaction.txid, ANCHOR_OUTPUT_INDEX)
        except BroadcastError as e:
            logger.warning(f"Overlay notification failed for {transaction.txid}: {e}")
            return SideEffectOutcome.failed(OVERLAY_NOTIFICATION, e)
        return SideEffectOutcome.ok(OVERLAY_NOTIFICATION)

    # -------------------------------------------------------------------------
    # resolve
    # -------------------------------------------------------------------------

    async def resolve(self, did: str) -> Any:
        """Resolve a creation-form DID.

        Returns:
            A :class:`DIDDocument`, the raw overlay field when it is not a
            JSON object, or None when the DID is not indexed locally.

        Raises:
            FormatError: ``did`` is not in creation form.
            ProviderError: The overlay lookup failed, returned a malformed
                payload, or is needed but not configured.
        """
        parsed = parse_creation_did(did, self.scheme)
        serial = parsed.serial_number
        logger.debug(f"Resolving DID {did} (topic {parsed.topic})")

        if self.lookup_index is None:
            logger.info("No lookup index configured; DID cannot be resolved")
            return None

        record = await self.lookup_index.get(serial)
        if record is None:
            logger.info(f"DID {did} not found in lookup index")
            return None

        if record.document is not None:
            return record.document

        if self.lookup_client is None:
            raise ProviderError("Overlay provider URL not configured")

        outputs = await self.lookup_client.query(serial, record.outpoint)
        if not outputs:
            logger.info(f"Overlay returned no outputs for {record.outpoint}")
            return None

        fields = outputs[0].get("fields")
        if not isinstance(fields, list) or not fields:
            logger.info(f"Overlay output for {record.outpoint} carries no fields")
            return None
        return decode_document_field(fields[0])

    # -------------------------------------------------------------------------
    # update
    # -------------------------------------------------------------------------

    async def update(self, did: str, new_document: DIDDocument | dict[str, Any]) -> UpdateResult:
        """Spend the previous anchor and publish a new document.

        ``did`` must be in outpoint form; a creation-form DID has to be
        resolved to its outpoint first.

        Raises:
            FormatError: ``did`` is not in outpoint form.
            ValidationError: The document has the wrong shape.
            TransactionError: The wallet could not build the update.
        """
        parsed = parse_updated_did(did, self.scheme)
        if isinstance(new_document, DIDDocument):
            document_json = new_document.to_json()
        else:
            DIDDocument.from_dict(new_document)
            document_json = json.dumps(new_document, separators=(",", ":"))

        data_script = build_tagged_data_script(
            self.topic, "UPDATE", parsed.txid, str(parsed.output_index), document_json
        )
        owner_key = await self.wallet.get_public_key(
            protocol_id=DID_PROTOCOL_ID,
            key_id=parsed.outpoint,
            counterparty=SELF,
            for_self=True,
        )

        transaction = await self.transaction_creator.create_action(
            CreateActionArgs(
                description=f"Update DID on overlay (topic: {self.topic})",
                inputs=[ActionInput(outpoint=parsed.outpoint, input_description="Previous DID output")],
                outputs=[
                    ActionOutput(
                        locking_script=data_script.hex(),
                        satoshis=0,
                        output_description="Updated DID Document",
                    ),
                    ActionOutput(
                        locking_script=build_p2pk_script(owner_key).hex(),
                        satoshis=ANCHOR_SATOSHIS,
                        output_description="Updated DID identifier",
                        custom_instructions=json.dumps(
                            {"keyDerivation": {"purpose": "did-identifier", "counterparty": SELF}}
                        ),
                    ),
                ],
                labels=[DID_BASKET, "update"],
                randomize_outputs=False,
            )
        )

        new_did = format_updated_did(self.scheme, self.topic, transaction.txid, UPDATED_OUTPUT_INDEX)
        logger.info(f"Updated {did} -> {new_did}")
        return UpdateResult(did=new_did, txid=transaction.txid, transaction=transaction)
