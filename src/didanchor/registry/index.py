# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Lookup index mapping DID serial numbers to ledger outpoints.

Records are written once by ``create`` and never deleted by the registry.
Default is in-memory; a Redis backend is available for deployments where
the mapping must survive restarts.

Configure via environment variables:
    DIDANCHOR_LOOKUP_INDEX=memory|redis  (default: memory)
    DIDANCHOR_REDIS_URL=redis://localhost:6379  (default)
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

try:
    import redis.asyncio as aioredis
except ImportError:  # pragma: no cover
    aioredis = None  # type: ignore[assignment]

from ..core.config import get_config
from ..core.exceptions import ConfigException
from .document import DIDDocument

logger = logging.getLogger(__name__)

# Key prefix for Redis to avoid collisions
_REDIS_KEY_PREFIX = "didanchor:did_lookup:"


@dataclass
class AnchorRecord:
    """Serial number to outpoint mapping, with a cached document copy."""

    serial_number: str
    txid: str
    output_index: int
    topic: str
    document: DIDDocument | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def outpoint(self) -> str:
        return f"{self.txid}.{self.output_index}"

    def to_record(self) -> dict[str, Any]:
        """Persisted shape: ``{serialNumber, txid, vout, topic, didDocument, createdAt}``."""
        return {
            "serialNumber": self.serial_number,
            "txid": self.txid,
            "vout": self.output_index,
            "topic": self.topic,
            "didDocument": self.document.to_dict() if self.document is not None else None,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> AnchorRecord:
        document = data.get("didDocument")
        created_at = data.get("createdAt")
        return cls(
            serial_number=data["serialNumber"],
            txid=data["txid"],
            output_index=int(data["vout"]),
            topic=data.get("topic", ""),
            document=DIDDocument.from_dict(document) if document else None,
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(UTC),
        )


class LookupIndex(ABC):
    """Abstract interface for the serial number lookup index."""

    @abstractmethod
    async def put(self, record: AnchorRecord) -> None:
        """Store a record, keyed by its serial number."""
        ...

    @abstractmethod
    async def get(self, serial_number: str) -> AnchorRecord | None:
        """Return the record for ``serial_number``, or None."""
        ...


class MemoryLookupIndex(LookupIndex):
    """In-memory lookup index.

    Suitable for development and tests. Records are lost on restart.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    async def put(self, record: AnchorRecord) -> None:
        self._records[record.serial_number] = record.to_record()

    async def get(self, serial_number: str) -> AnchorRecord | None:
        data = self._records.get(serial_number)
        if data is None:
            return None
        return AnchorRecord.from_record(data)

    def __contains__(self, serial_number: str) -> bool:
        return serial_number in self._records

    def __len__(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        """Clear all records (useful for testing)."""
        self._records.clear()


class RedisLookupIndex(LookupIndex):
    """Redis-backed lookup index.

    Requires redis-py: ``pip install didanchor[redis]``
    """

    def __init__(self, redis_url: str | None = None) -> None:
        if aioredis is None:
            raise ImportError("redis package is required for RedisLookupIndex. Install with: pip install didanchor[redis]")

        url = redis_url or get_config().redis_url
        self._client = aioredis.Redis.from_url(url, decode_responses=True)

    def _key(self, serial_number: str) -> str:
        return f"{_REDIS_KEY_PREFIX}{serial_number}"

    async def put(self, record: AnchorRecord) -> None:
        await self._client.set(self._key(record.serial_number), json.dumps(record.to_record()))

    async def get(self, serial_number: str) -> AnchorRecord | None:
        raw = await self._client.get(self._key(serial_number))
        if raw is None:
            return None
        return AnchorRecord.from_record(json.loads(raw))


# =============================================================================
# FACTORY
# =============================================================================

_index_instance: LookupIndex | None = None


def get_lookup_index() -> LookupIndex:
    """Get or create the global lookup index.

    Reads DIDANCHOR_LOOKUP_INDEX:
        - "memory" (default): In-memory index
        - "redis": Redis-backed index

    Raises:
        ConfigException: The backend name is unknown.
    """
    global _index_instance
    if _index_instance is not None:
        return _index_instance

    backend = get_config().lookup_index.lower()

    if backend == "redis":
        logger.info("Using Redis lookup index")
        _index_instance = RedisLookupIndex()
    elif backend == "memory":
        logger.info("Using in-memory lookup index")
        _index_instance = MemoryLookupIndex()
    else:
        raise ConfigException(f"Unknown lookup index backend '{backend}'", missing_vars=["DIDANCHOR_LOOKUP_INDEX"])

    return _index_instance


def reset_lookup_index() -> None:
    """Reset the global index instance (for testing)."""
    global _index_instance
    _index_instance = None
