"""
Tests for PayoutInitializer and PayoutStatsReader with a mocked web3.
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from services.errors import PayoutInitializationError
from services.payout_contract import PayoutInitializer, PayoutStatsReader

CONTRACT = "0x52908400098527886E0F7030069857D2E4169EE7"
CREATOR = "0x8617E340B3D01FA5F11F306F4090FD50E238070D"
SUPPORTER = "0xde709f2102306220921060314715629080e2fb77"
TX_HASH = b"\x12" * 32


def make_w3(receipt=None, send_error=None):
    w3 = MagicMock()

    account = MagicMock()
    account.address = CREATOR
    account.sign_transaction.return_value = MagicMock(raw_transaction=b"signed")
    w3.eth.account.from_key.return_value = account

    initialize_call = MagicMock()
    initialize_call.build_transaction = AsyncMock(return_value={"to": CONTRACT, "data": "0x"})
    contract = MagicMock()
    contract.functions.initialize.return_value = initialize_call
    w3.eth.contract.return_value = contract

    w3.eth.get_transaction_count = AsyncMock(return_value=7)
    w3.eth.send_raw_transaction = AsyncMock(return_value=TX_HASH, side_effect=send_error)
    w3.eth.wait_for_transaction_receipt = AsyncMock(
        return_value=receipt if receipt is not None else {"status": 1, "blockNumber": 100}
    )
    return w3, contract, account


@pytest.mark.asyncio
async def test_initialize_sends_table_and_waits():
    w3, contract, account = make_w3()
    initializer = PayoutInitializer(w3, "0x" + "11" * 32, tx_timeout=30)

    tx_hash = await initializer.initialize(CONTRACT, [CREATOR, SUPPORTER], [9000, 1000])

    assert tx_hash == "0x" + "12" * 32
    payees, shares = contract.functions.initialize.call_args.args
    assert payees == [CREATOR, SUPPORTER]
    assert shares == [9000, 1000]
    tx_params = contract.functions.initialize.return_value.build_transaction.call_args.args[0]
    assert tx_params == {"from": CREATOR, "nonce": 7}
    account.sign_transaction.assert_called_once()
    w3.eth.send_raw_transaction.assert_awaited_once_with(b"signed")
    assert w3.eth.wait_for_transaction_receipt.call_args.kwargs["timeout"] == 30


@pytest.mark.asyncio
async def test_reverted_receipt_raises():
    w3, _, _ = make_w3(receipt={"status": 0, "blockNumber": 100})
    initializer = PayoutInitializer(w3, "0x" + "11" * 32)

    with pytest.raises(PayoutInitializationError) as exc:
        await initializer.initialize(CONTRACT, [CREATOR], [10000])
    assert exc.value.tx_hash == "0x" + "12" * 32


@pytest.mark.asyncio
async def test_send_failure_raises():
    w3, _, _ = make_w3(send_error=ConnectionError("rpc down"))
    initializer = PayoutInitializer(w3, "0x" + "11" * 32)

    with pytest.raises(PayoutInitializationError) as exc:
        await initializer.initialize(CONTRACT, [CREATOR], [10000])
    assert exc.value.tx_hash is None


@pytest.mark.asyncio
async def test_receipt_timeout_raises():
    w3, _, _ = make_w3()
    w3.eth.wait_for_transaction_receipt.side_effect = TimeoutError("not mined")
    initializer = PayoutInitializer(w3, "0x" + "11" * 32)

    with pytest.raises(PayoutInitializationError):
        await initializer.initialize(CONTRACT, [CREATOR], [10000])


def test_requires_private_key():
    with pytest.raises(ValueError):
        PayoutInitializer(MagicMock(), "")


@pytest.mark.asyncio
async def test_stats_reader_conversions():
    w3 = MagicMock()
    contract = MagicMock()
    contract.functions.percentageShares.return_value.call = AsyncMock(return_value=1333)
    contract.functions.getUserEarnings.return_value.call = AsyncMock(return_value=5 * 10**17)
    contract.functions.balanceOf.return_value.call = AsyncMock(return_value=2 * 10**18)
    w3.eth.contract.return_value = contract

    reader = PayoutStatsReader(w3)

    assert await reader.supporter_share_percent(CONTRACT, SUPPORTER) == Decimal("13.33")
    assert await reader.user_earnings(CONTRACT, SUPPORTER) == Decimal("0.5")
    assert await reader.coin_balance(CONTRACT, SUPPORTER) == Decimal("2")
