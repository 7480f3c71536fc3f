"""
Tests for the per-platform launch pipelines in launchmint/platforms/
"""

from unittest.mock import Mock, AsyncMock

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.system_program import transfer, TransferParams

from launchmint.errors import ConfigError, DeadlineExceededError, SubmissionError, SwapError, UploadError
from launchmint.models import (
    Deadline,
    FeeClaimer,
    LaunchContext,
    LaunchRequest,
    LaunchState,
    Platform,
    UploadedMetadata,
)
from launchmint.platforms import BagsLauncher, PumpFunLauncher, Usd1Launcher
from launchmint.services.bags_service import FeeShareDistributor
from launchmint.services.jupiter_service import USD1_MINT
from launchmint.services.launchlab_sdk import LAUNCHPAD_PROGRAM_ID, pool_pda
from launchmint.services.pump_sdk import LAMPORTS_PER_SOL, PUMP_PROGRAM_ID, PumpGlobal, PumpSdk, anchor_discriminator
from launchmint.services.transaction_service import build_transaction


def create_context(credential, platform, initial_buy=0.0, claimers=(), deadline=None):
    request = LaunchRequest(
        platform=platform,
        name='Test Token',
        symbol='TEST',
        image_url='https://example.com/token.png',
        signing_credential=credential,
        api_key='bags-key' if platform is Platform.BAGS else None,
        initial_buy_amount=initial_buy,
        fee_claimers=tuple(claimers),
    )
    return LaunchContext(request, deadline)


def create_mock_ipfs():
    ipfs = Mock()
    ipfs.upload_pump_metadata = AsyncMock(return_value=UploadedMetadata(uri='https://ipfs.io/ipfs/pump'))
    ipfs.upload_bonk_metadata = AsyncMock(return_value=UploadedMetadata(uri='https://ipfs.io/ipfs/bonk'))
    ipfs.upload_bags_metadata = AsyncMock(
        return_value=UploadedMetadata(uri='https://ipfs.io/ipfs/bags', token_mint='BagsMint111')
    )
    return ipfs


def create_test_global():
    return PumpGlobal(
        initialized=True,
        authority=Pubkey.new_unique(),
        fee_recipient=Pubkey.new_unique(),
        initial_virtual_token_reserves=1_073_000_000_000_000,
        initial_virtual_sol_reserves=30_000_000_000,
        initial_real_token_reserves=793_100_000_000_000,
        token_total_supply=1_000_000_000_000_000,
        fee_basis_points=95,
        creator_fee_basis_points=5,
    )


def program_ids(tx):
    message = tx.message
    return [message.account_keys[ix.program_id_index] for ix in message.instructions]


class TestPumpFunLauncher:

    @pytest.mark.asyncio
    async def test_create_only(self, credential, rpc, submitter):
        ipfs = create_mock_ipfs()
        sdk = PumpSdk(rpc)
        sdk.fetch_global = AsyncMock()
        launcher = PumpFunLauncher(submitter, rpc, ipfs, sdk)
        ctx = create_context(credential, Platform.PUMPFUN)

        result = await launcher.launch(ctx)

        ipfs.upload_pump_metadata.assert_awaited_once()
        sdk.fetch_global.assert_not_awaited()
        submitter.submit.assert_awaited_once()

        tx = submitter.submit.await_args.args[0]
        assert program_ids(tx) == [PUMP_PROGRAM_ID]
        assert bytes(tx.message.instructions[0].data).startswith(anchor_discriminator('create'))
        assert len(tx.signatures) == 2

        assert result.token_address == str(ctx.mint.pubkey())
        assert result.tx_hash == 'launch-sig'
        assert result.url == f"https://pump.fun/{ctx.mint.pubkey()}"
        assert ctx.state is LaunchState.CONFIRMED

    @pytest.mark.asyncio
    async def test_create_and_buy(self, credential, rpc, submitter):
        sdk = PumpSdk(rpc)
        sdk.fetch_global = AsyncMock(return_value=create_test_global())
        launcher = PumpFunLauncher(submitter, rpc, create_mock_ipfs(), sdk)
        ctx = create_context(credential, Platform.PUMPFUN, initial_buy=0.5)

        await launcher.launch(ctx)

        tx = submitter.submit.await_args.args[0]
        assert len(tx.message.instructions) == 3
        assert bytes(tx.message.instructions[2].data).startswith(anchor_discriminator('buy'))

    @pytest.mark.asyncio
    async def test_upload_failure_stops_launch(self, credential, rpc, submitter):
        ipfs = create_mock_ipfs()
        ipfs.upload_pump_metadata = AsyncMock(side_effect=UploadError('IPFS upload failed: HTTP 500'))
        launcher = PumpFunLauncher(submitter, rpc, ipfs, PumpSdk(rpc))
        ctx = create_context(credential, Platform.PUMPFUN)

        with pytest.raises(UploadError):
            await launcher.launch(ctx)

        submitter.submit.assert_not_awaited()
        assert ctx.state is LaunchState.FAILED
        assert isinstance(ctx.error, UploadError)

    @pytest.mark.asyncio
    async def test_expired_deadline_before_upload(self, credential, rpc, submitter):
        ipfs = create_mock_ipfs()
        launcher = PumpFunLauncher(submitter, rpc, ipfs, PumpSdk(rpc))
        ctx = create_context(credential, Platform.PUMPFUN, deadline=Deadline(0))

        with pytest.raises(DeadlineExceededError):
            await launcher.launch(ctx)
        ipfs.upload_pump_metadata.assert_not_awaited()


class TestUsd1Launcher:

    @pytest.mark.asyncio
    async def test_create_only_has_pool_address(self, credential, rpc, submitter):
        liquidity = Mock()
        liquidity.prepare = AsyncMock()
        launcher = Usd1Launcher(submitter, rpc, create_mock_ipfs(), liquidity)
        ctx = create_context(credential, Platform.USD1)

        result = await launcher.launch(ctx)

        liquidity.prepare.assert_not_awaited()
        tx = submitter.submit.await_args.args[0]
        assert program_ids(tx)[-1] == LAUNCHPAD_PROGRAM_ID
        assert result.pool_address == str(pool_pda(ctx.mint.pubkey(), USD1_MINT))
        assert result.to_response()['poolAddress'] == result.pool_address
        assert LaunchState.LIQUIDITY_PREPARED not in ctx.history

    @pytest.mark.asyncio
    async def test_initial_buy_adds_buy_instruction(self, credential, rpc, submitter):
        liquidity = Mock()
        liquidity.prepare = AsyncMock(return_value=1.0)
        launcher = Usd1Launcher(submitter, rpc, create_mock_ipfs(), liquidity)
        ctx = create_context(credential, Platform.USD1, initial_buy=1.0)

        await launcher.launch(ctx)

        tx = submitter.submit.await_args.args[0]
        assert program_ids(tx)[-1] == LAUNCHPAD_PROGRAM_ID
        assert bytes(tx.message.instructions[-1].data).startswith(anchor_discriminator('buy_exact_in'))
        assert LaunchState.LIQUIDITY_PREPARED in ctx.history

    @pytest.mark.asyncio
    async def test_degraded_liquidity_launches_create_only(self, credential, rpc, submitter):
        liquidity = Mock()
        liquidity.prepare = AsyncMock(return_value=0.0)
        launcher = Usd1Launcher(submitter, rpc, create_mock_ipfs(), liquidity)
        ctx = create_context(credential, Platform.USD1, initial_buy=1.0)

        await launcher.launch(ctx)

        tx = submitter.submit.await_args.args[0]
        assert not bytes(tx.message.instructions[-1].data).startswith(anchor_discriminator('buy_exact_in'))

    @pytest.mark.asyncio
    async def test_swap_failure_means_no_create(self, credential, rpc, submitter):
        liquidity = Mock()
        liquidity.prepare = AsyncMock(side_effect=SwapError('Jupiter quote failed: HTTP 400'))
        launcher = Usd1Launcher(submitter, rpc, create_mock_ipfs(), liquidity)
        ctx = create_context(credential, Platform.USD1, initial_buy=1.0)

        with pytest.raises(SwapError):
            await launcher.launch(ctx)

        submitter.submit.assert_not_awaited()
        assert ctx.state is LaunchState.FAILED

    @pytest.mark.asyncio
    async def test_missing_launch_config(self, credential, rpc, submitter):
        rpc.get_account_info = AsyncMock(return_value=None)
        launcher = Usd1Launcher(submitter, rpc, create_mock_ipfs(), Mock())

        with pytest.raises(SubmissionError) as exc:
            await launcher.launch(create_context(credential, Platform.USD1))
        assert exc.value.message == 'USD1 config not found on chain'


class TestBagsLauncher:

    def create_bags(self, creator):
        ix = transfer(TransferParams(from_pubkey=creator.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1))
        remote_tx = build_transaction([ix], creator.pubkey(), Hash.default(), [creator])

        bags = Mock()
        bags.lookup_wallet = AsyncMock(return_value='WalletA')
        bags.create_fee_share_config = AsyncMock(return_value={'meteoraConfigKey': 'ConfigKey111'})
        bags.create_launch_transaction = AsyncMock(return_value=bytes(remote_tx))
        return bags

    @pytest.mark.asyncio
    async def test_launch_uses_remote_mint(self, credential, creator, submitter):
        ipfs = create_mock_ipfs()
        bags = self.create_bags(creator)
        fees = FeeShareDistributor(bags, submitter)
        launcher = BagsLauncher(submitter, ipfs, bags, fees)
        ctx = create_context(credential, Platform.BAGS, claimers=[FeeClaimer('twitter', 'alice', 5000)])

        result = await launcher.launch(ctx)

        assert result.token_address == 'BagsMint111'
        assert result.url == 'https://bags.fm/BagsMint111'
        kwargs = bags.create_launch_transaction.await_args.kwargs
        assert kwargs['config_key'] == 'ConfigKey111'
        assert kwargs['initial_buy_lamports'] == int(0.01 * LAMPORTS_PER_SOL)
        assert submitter.submit.await_args.kwargs['skip_preflight'] is True
        assert LaunchState.FEE_CONFIGURED in ctx.history

    @pytest.mark.asyncio
    async def test_over_allocation_rejected_before_any_call(self, credential, creator, submitter):
        ipfs = create_mock_ipfs()
        bags = self.create_bags(creator)
        launcher = BagsLauncher(submitter, ipfs, bags, FeeShareDistributor(bags, submitter))
        ctx = create_context(credential, Platform.BAGS, claimers=[
            FeeClaimer('twitter', 'alice', 6000),
            FeeClaimer('twitter', 'bob', 5000),
        ])

        with pytest.raises(ConfigError):
            await launcher.launch(ctx)

        ipfs.upload_bags_metadata.assert_not_awaited()
        bags.lookup_wallet.assert_not_awaited()
        bags.create_launch_transaction.assert_not_awaited()
        submitter.submit.assert_not_awaited()
