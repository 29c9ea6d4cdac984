"""Tests for didanchor.registry.wallet module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from didanchor.core.exceptions import TransactionError
from didanchor.registry.wallet import (
    ActionInput,
    ActionOutput,
    CreateActionArgs,
    CreateActionResult,
    HTTPWalletClient,
)

TXID = "ab" * 32


def _mock_session(status: int = 200, json_data=None):
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=json_data)

    mock_session = MagicMock()
    mock_session.post = MagicMock(
        return_value=MagicMock(__aenter__=AsyncMock(return_value=mock_response), __aexit__=AsyncMock(return_value=None))
    )
    return mock_session


class TestCreateActionArgs:
    def test_to_dict(self):
        args = CreateActionArgs(
            description="Create DID",
            outputs=[ActionOutput("51", 1, "token", basket="bsv-did", custom_instructions="{}")],
            labels=["bsv-did", "create"],
            randomize_outputs=False,
        )
        assert args.to_dict() == {
            "description": "Create DID",
            "outputs": [
                {
                    "lockingScript": "51",
                    "satoshis": 1,
                    "outputDescription": "token",
                    "basket": "bsv-did",
                    "customInstructions": "{}",
                }
            ],
            "labels": ["bsv-did", "create"],
            "options": {"randomizeOutputs": False},
        }

    def test_inputs_included_when_present(self):
        args = CreateActionArgs(description="Update", inputs=[ActionInput(f"{TXID}.0", "prev")])
        assert args.to_dict()["inputs"] == [{"outpoint": f"{TXID}.0", "inputDescription": "prev"}]

    def test_optional_output_members_omitted(self):
        assert "basket" not in ActionOutput("51", 0, "data").to_dict()


class TestCreateActionResult:
    def test_tx_as_byte_list(self):
        assert CreateActionResult.from_dict({"txid": TXID, "tx": [1, 2, 3]}).tx == b"\x01\x02\x03"

    def test_tx_as_hex(self):
        assert CreateActionResult.from_dict({"txid": TXID, "tx": "0102"}).tx == b"\x01\x02"

    def test_tx_absent(self):
        assert CreateActionResult.from_dict({"txid": TXID}).tx is None

    def test_missing_txid(self):
        with pytest.raises(TransactionError):
            CreateActionResult.from_dict({"tx": "00"})

    def test_bad_hex(self):
        with pytest.raises(TransactionError):
            CreateActionResult.from_dict({"txid": TXID, "tx": "zz"})


@pytest.mark.asyncio
class TestHTTPWalletClient:
    async def test_create_action(self):
        session = _mock_session(json_data={"txid": TXID, "tx": [1, 0]})

        with patch("aiohttp.ClientSession") as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=session)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=None)

            result = await HTTPWalletClient("http://localhost:3321/").create_action(
                CreateActionArgs(description="test")
            )

        assert result.txid == TXID
        assert result.tx == b"\x01\x00"
        args, kwargs = session.post.call_args
        assert args[0] == "http://localhost:3321/createAction"
        assert kwargs["headers"] == {"Originator": "didanchor"}

    async def test_get_public_key(self):
        session = _mock_session(json_data={"publicKey": "02" + "11" * 32})

        with patch("aiohttp.ClientSession") as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=session)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=None)

            key = await HTTPWalletClient("http://localhost:3321").get_public_key(
                protocol_id=(0, "tm did"), key_id="ff", counterparty="self", for_self=True
            )

        assert key == "02" + "11" * 32
        body = session.post.call_args.kwargs["json"]
        assert body == {"protocolID": [0, "tm did"], "keyID": "ff", "counterparty": "self", "forSelf": True}

    async def test_create_signature(self):
        session = _mock_session(json_data={"signature": [0x30, 0x02]})

        with patch("aiohttp.ClientSession") as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=session)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=None)

            signature = await HTTPWalletClient("http://localhost:3321").create_signature(
                b"\x01", (0, "tm did"), "ff", "self"
            )

        assert signature == b"\x30\x02"
        assert session.post.call_args.kwargs["json"]["data"] == [1]

    async def test_error_status(self):
        session = _mock_session(status=400)

        with patch("aiohttp.ClientSession") as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=session)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=None)

            with pytest.raises(TransactionError) as exc_info:
                await HTTPWalletClient("http://localhost:3321").create_action(CreateActionArgs(description="x"))

        assert exc_info.value.status == 400

    async def test_error_body(self):
        session = _mock_session(json_data={"status": "error", "description": "Insufficient funds"})

        with patch("aiohttp.ClientSession") as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=session)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=None)

            with pytest.raises(TransactionError, match="Insufficient funds"):
                await HTTPWalletClient("http://localhost:3321").create_action(CreateActionArgs(description="x"))

    async def test_network_error(self):
        with patch("aiohttp.ClientSession") as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
            mock_client.return_value.__aexit__ = AsyncMock(return_value=None)

            with pytest.raises(TransactionError):
                await HTTPWalletClient("http://localhost:3321").create_action(CreateActionArgs(description="x"))
