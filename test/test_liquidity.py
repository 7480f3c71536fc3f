"""
Tests for USD1 liquidity preparation in launchmint/services/jupiter_service.py
"""

from unittest.mock import Mock, AsyncMock

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.system_program import transfer, TransferParams

from launchmint.errors import SwapError, SubmissionError
from launchmint.models import LaunchContext, LaunchRequest, Platform, SwapQuote
from launchmint.services.jupiter_service import LiquidityPreparer
from launchmint.services.transaction_service import build_transaction


def create_usd1_context(credential, amount=1.0):
    request = LaunchRequest(
        platform=Platform.USD1,
        name='Test Token',
        symbol='TEST',
        image_url='https://example.com/token.png',
        signing_credential=credential,
        initial_buy_amount=amount,
    )
    return LaunchContext(request)


def create_swap_tx(owner):
    ix = transfer(TransferParams(from_pubkey=owner.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1))
    return build_transaction([ix], owner.pubkey(), Hash.default(), [owner])


def create_mock_jupiter(owner):
    jupiter = Mock()
    jupiter.quote_exact_out = AsyncMock(return_value=SwapQuote(in_amount=9_000_000, out_amount=1_100_000, raw={}))
    jupiter.build_swap = AsyncMock(return_value=(create_swap_tx(owner), 2000))
    return jupiter


class TestLiquidityPreparer:

    @pytest.mark.asyncio
    async def test_zero_amount_skips_everything(self, credential, creator, rpc, submitter):
        jupiter = create_mock_jupiter(creator)
        liquidity = LiquidityPreparer(rpc, jupiter, submitter)

        assert await liquidity.prepare(create_usd1_context(credential, 0), 0) == 0.0
        rpc.get_token_balance.assert_not_awaited()
        jupiter.quote_exact_out.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sufficient_balance_no_swap(self, credential, creator, rpc, submitter):
        rpc.get_token_balance = AsyncMock(return_value=5.0)
        jupiter = create_mock_jupiter(creator)
        liquidity = LiquidityPreparer(rpc, jupiter, submitter)

        assert await liquidity.prepare(create_usd1_context(credential), 1.0) == 1.0
        jupiter.quote_exact_out.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_swaps_shortfall_plus_buffer(self, credential, creator, rpc, submitter):
        rpc.get_token_balance = AsyncMock(side_effect=[0.0, 1.1])
        jupiter = create_mock_jupiter(creator)
        liquidity = LiquidityPreparer(rpc, jupiter, submitter, buffer=0.1)

        amount = await liquidity.prepare(create_usd1_context(credential), 1.0)

        assert amount == 1.0
        jupiter.quote_exact_out.assert_awaited_once_with(1_100_000)
        submitter.submit.assert_awaited_once()
        swap_tx = submitter.submit.await_args.args[0]
        assert creator.pubkey() in swap_tx.message.account_keys
        assert rpc.get_token_balance.await_count == 2

    @pytest.mark.asyncio
    async def test_degrades_to_create_only(self, credential, creator, rpc, submitter):
        rpc.get_token_balance = AsyncMock(side_effect=[0.0, 0.5])
        liquidity = LiquidityPreparer(rpc, create_mock_jupiter(creator), submitter, degrade_to_create_only=True)

        assert await liquidity.prepare(create_usd1_context(credential), 1.0) == 0.0

    @pytest.mark.asyncio
    async def test_shortfall_fails_without_degrade(self, credential, creator, rpc, submitter):
        rpc.get_token_balance = AsyncMock(side_effect=[0.0, 0.5])
        liquidity = LiquidityPreparer(rpc, create_mock_jupiter(creator), submitter, degrade_to_create_only=False)

        with pytest.raises(SwapError):
            await liquidity.prepare(create_usd1_context(credential), 1.0)

    @pytest.mark.asyncio
    async def test_quote_failure_propagates(self, credential, creator, rpc, submitter):
        jupiter = create_mock_jupiter(creator)
        jupiter.quote_exact_out = AsyncMock(side_effect=SwapError('Jupiter quote failed: HTTP 400'))
        liquidity = LiquidityPreparer(rpc, jupiter, submitter)

        with pytest.raises(SwapError):
            await liquidity.prepare(create_usd1_context(credential), 1.0)
        submitter.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_swap_submission_failure_is_swap_error(self, credential, creator, rpc, submitter):
        submitter.submit = AsyncMock(side_effect=SubmissionError('Transaction rejected'))
        liquidity = LiquidityPreparer(rpc, create_mock_jupiter(creator), submitter)

        with pytest.raises(SwapError):
            await liquidity.prepare(create_usd1_context(credential), 1.0)

    @pytest.mark.asyncio
    async def test_swap_confirms_against_jupiter_block_height(self, credential, creator, rpc, submitter):
        rpc.get_token_balance = AsyncMock(side_effect=[0.0, 1.1])
        liquidity = LiquidityPreparer(rpc, create_mock_jupiter(creator), submitter)

        await liquidity.prepare(create_usd1_context(credential), 1.0)

        assert submitter.submit.await_args.args[1] == 2000
        rpc.get_latest_blockhash.assert_not_awaited()
