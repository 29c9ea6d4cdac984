# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""DID registry for ledger-anchored identifiers.

Key concepts:
- **CreationForm / UpdatedForm**: the two DID surface forms.
- **DIDDocument**: the document anchored and resolved.
- **AnchorRecord / LookupIndex**: serial number to outpoint mapping.
- **DIDRegistry**: create, resolve and update.
"""

from .did import CreationForm, ParsedDID, UpdatedForm, parse_creation_did, parse_did, parse_updated_did
from .document import DEFAULT_CONTEXT, DIDDocument, VerificationMethod
from .index import AnchorRecord, LookupIndex, MemoryLookupIndex, RedisLookupIndex, get_lookup_index
from .registry import CreateResult, DIDRegistry, SideEffectOutcome, UpdateResult
from .wallet import (
    ActionInput,
    ActionOutput,
    CreateActionArgs,
    CreateActionResult,
    HTTPWalletClient,
    TransactionCreator,
)

__all__ = [
    "DEFAULT_CONTEXT",
    "ActionInput",
    "ActionOutput",
    "AnchorRecord",
    "CreateActionArgs",
    "CreateActionResult",
    "CreateResult",
    "CreationForm",
    "DIDDocument",
    "DIDRegistry",
    "HTTPWalletClient",
    "LookupIndex",
    "MemoryLookupIndex",
    "ParsedDID",
    "RedisLookupIndex",
    "SideEffectOutcome",
    "TransactionCreator",
    "UpdateResult",
    "UpdatedForm",
    "VerificationMethod",
    "get_lookup_index",
    "parse_creation_did",
    "parse_did",
    "parse_updated_did",
]
