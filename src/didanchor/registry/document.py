# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""DID document model (W3C DID Core shape)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ..core.exceptions import ValidationError

DEFAULT_CONTEXT = "https://www.w3.org/ns/did/v1"

VERIFICATION_KEY_TYPE = "EcdsaSecp256k1VerificationKey2019"

# Keys that map onto DIDDocument attributes; anything else is kept in ``extra``
_KNOWN_KEYS = {
    "@context",
    "id",
    "verificationMethod",
    "authentication",
    "assertionMethod",
    "keyAgreement",
    "capabilityDelegation",
    "capabilityInvocation",
}


def _member_list(data: dict[str, Any], key: str, value: Any = None) -> list[Any]:
    if value is None:
        value = data.get(key, [])
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list", field=key)
    return list(value)


@dataclass
class VerificationMethod:
    """A public key entry in a DID document."""

    id: str
    controller: str
    public_key_jwk: dict[str, Any] = field(default_factory=dict)
    type: str = VERIFICATION_KEY_TYPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "controller": self.controller,
            "publicKeyJwk": self.public_key_jwk,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VerificationMethod:
        """Create from dictionary.

        Raises:
            ValidationError: ``data`` is not an object with a string ``id``.
        """
        if not isinstance(data, dict):
            raise ValidationError("verificationMethod entries must be objects", field="verificationMethod")
        if not isinstance(data.get("id"), str) or not data["id"]:
            raise ValidationError("verificationMethod entries require a string id", field="verificationMethod")
        for key in ("controller", "type"):
            if key in data and not isinstance(data[key], str):
                raise ValidationError(f"verificationMethod {key} must be a string", field="verificationMethod")
        public_key_jwk = data.get("publicKeyJwk", {})
        if not isinstance(public_key_jwk, dict):
            raise ValidationError("verificationMethod publicKeyJwk must be an object", field="verificationMethod")
        return cls(
            id=data["id"],
            controller=data.get("controller", ""),
            public_key_jwk=public_key_jwk,
            type=data.get("type", VERIFICATION_KEY_TYPE),
        )


@dataclass
class DIDDocument:
    """A DID document.

    ``id`` stays ``None`` until the anchor transaction exists. Role lists
    hold verification method ids (or embedded method objects, as DID Core
    allows). Unknown top-level members survive a round trip through ``extra``.
    """

    id: str | None = None
    context: list[str] = field(default_factory=list)
    verification_method: list[VerificationMethod] = field(default_factory=list)
    authentication: list[Any] = field(default_factory=list)
    assertion_method: list[Any] = field(default_factory=list)
    key_agreement: list[Any] = field(default_factory=list)
    capability_delegation: list[Any] = field(default_factory=list)
    capability_invocation: list[Any] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def with_default_context(self) -> DIDDocument:
        """Return a copy with the DID Core context applied when none is set."""
        doc = DIDDocument.from_dict(self.to_dict())
        if not doc.context:
            doc.context = [DEFAULT_CONTEXT]
        return doc

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (JSON-LD member names)."""
        doc: dict[str, Any] = dict(self.extra)
        if self.context:
            doc["@context"] = list(self.context)
        if self.id is not None:
            doc["id"] = self.id
        doc["verificationMethod"] = [vm.to_dict() for vm in self.verification_method]
        doc["authentication"] = list(self.authentication)
        doc["assertionMethod"] = list(self.assertion_method)
        doc["keyAgreement"] = list(self.key_agreement)
        doc["capabilityDelegation"] = list(self.capability_delegation)
        doc["capabilityInvocation"] = list(self.capability_invocation)
        return doc

    def to_json(self, indent: int | None = None) -> str:
        """Convert to a compact (or indented) JSON string."""
        separators = (",", ":") if indent is None else None
        return json.dumps(self.to_dict(), indent=indent, separators=separators)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DIDDocument:
        """Create from dictionary.

        Raises:
            ValidationError: A known member has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValidationError("DID document must be an object", field="didDocument")
        did = data.get("id")
        if did is not None and not isinstance(did, str):
            raise ValidationError("DID document id must be a string", field="id")
        context = data.get("@context", [])
        if isinstance(context, str):
            context = [context]
        return cls(
            id=did,
            context=_member_list(data, "@context", context),
            verification_method=[
                VerificationMethod.from_dict(vm) for vm in _member_list(data, "verificationMethod")
            ],
            authentication=_member_list(data, "authentication"),
            assertion_method=_member_list(data, "assertionMethod"),
            key_agreement=_member_list(data, "keyAgreement"),
            capability_delegation=_member_list(data, "capabilityDelegation"),
            capability_invocation=_member_list(data, "capabilityInvocation"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )
