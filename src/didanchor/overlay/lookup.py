# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Client for the overlay lookup service that indexes anchored DIDs."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..core.exceptions import ProviderError

logger = logging.getLogger(__name__)

LOOKUP_SERVICE = "ls_did"
OUTPUT_LIST = "output-list"


def parse_output_list(data: Any) -> list[dict[str, Any]]:
    """Extract the outputs of a lookup answer.

    Answers of any type other than ``output-list`` carry no outputs.

    Raises:
        ProviderError: The payload is not an object, or ``outputs`` is not
            a list of objects.
    """
    if not isinstance(data, dict):
        raise ProviderError("Malformed lookup answer: expected a JSON object")
    if data.get("type") != OUTPUT_LIST:
        return []
    outputs = data.get("outputs", [])
    if not isinstance(outputs, list) or not all(isinstance(output, dict) for output in outputs):
        raise ProviderError("Malformed lookup answer: outputs must be a list of objects")
    return outputs


class OverlayLookupClient:
    """Queries ``<overlay_url>/lookup`` for a DID's anchor output."""

    def __init__(self, overlay_url: str) -> None:
        self.overlay_url = overlay_url.rstrip("/")

    async def query(self, serial_number: str, outpoint: str) -> list[dict[str, Any]]:
        """Look up the outputs recorded for ``serial_number`` at ``outpoint``.

        Raises:
            ProviderError: Non-success status, network failure or malformed payload.
        """
        url = f"{self.overlay_url}/lookup"
        payload = {
            "service": LOOKUP_SERVICE,
            "query": {
                "serialNumber": serial_number,
                "outpoint": outpoint,
            },
        }
        logger.debug(f"Querying overlay lookup {url} for outpoint {outpoint}")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, json=payload) as response:
                    if not 200 <= response.status < 300:
                        logger.warning(f"Overlay lookup at {url} returned status {response.status}")
                        raise ProviderError(f"Overlay provider error: {response.status}", status=response.status)
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise ProviderError("Overlay provider returned a non-JSON body") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"Network error querying overlay provider: {e}") from e

        return parse_output_list(data)
