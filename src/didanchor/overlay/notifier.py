# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Submits newly anchored transactions to an overlay topic for indexing.

Submission is best-effort from the registry's point of view: this module
reports failure as :class:`BroadcastError` and never retries.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from ..core.exceptions import BroadcastError

logger = logging.getLogger(__name__)


class OverlayNotifier:
    """Broadcasts raw transactions to ``<overlay_url>/submit``."""

    def __init__(self, overlay_url: str) -> None:
        self.overlay_url = overlay_url.rstrip("/")

    async def notify(
        self,
        topic: str,
        tx_bytes: bytes,
        serial_number: str,
        txid: str,
        output_index: int,
    ) -> dict[str, Any]:
        """Submit ``tx_bytes`` to ``topic``.

        Returns:
            The overlay's JSON answer.

        Raises:
            BroadcastError: Non-success HTTP status, network failure,
                non-JSON answer, or an answer whose ``status`` is ``"error"``.
        """
        url = f"{self.overlay_url}/submit"
        headers = {
            "Content-Type": "application/octet-stream",
            "X-Topics": json.dumps([topic]),
        }
        logger.info(f"Submitting {txid}.{output_index} ({len(tx_bytes)} bytes) to topic {topic}")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, data=tx_bytes, headers=headers) as response:
                    if not 200 <= response.status < 300:
                        raise BroadcastError(
                            f"Overlay submit returned status {response.status}",
                            topic=topic,
                            response={"status": response.status},
                        )
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise BroadcastError("Overlay submit returned a non-JSON body", topic=topic) from e
        except aiohttp.ClientError as e:
            raise BroadcastError(f"Network error submitting to overlay: {e}", topic=topic) from e

        if isinstance(data, dict) and str(data.get("status", "")).lower() == "error":
            raise BroadcastError(f"Overlay rejected submission: {json.dumps(data)}", topic=topic, response=data)

        logger.info(f"Overlay accepted DID anchor {serial_number} on topic {topic}")
        return data if isinstance(data, dict) else {"response": data}
