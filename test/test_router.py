"""
Tests for request validation and dispatch in launchmint/router.py
"""

import asyncio
import gc
from unittest.mock import AsyncMock

import pytest

from launchmint.database import MemoryLaunchStore
from launchmint.errors import ValidationError, SubmissionError
from launchmint.models import Platform, FeeClaimer
from launchmint.router import LaunchRouter, normalize_platform, validate_request


class TestNormalizePlatform:

    @pytest.mark.parametrize("value,expected", [
        ('pumpfun', Platform.PUMPFUN),
        ('pump', Platform.PUMPFUN),
        ('Pump.Fun', Platform.PUMPFUN),
        ('bags', Platform.BAGS),
        ('bags.fm', Platform.BAGS),
        ('usd1', Platform.USD1),
        ('bonk', Platform.USD1),
        (' letsbonk ', Platform.USD1),
    ])
    def test_aliases(self, value, expected):
        assert normalize_platform(value) is expected

    def test_unknown_platform(self):
        with pytest.raises(ValidationError) as exc:
            normalize_platform('raydium')
        assert exc.value.field == 'platform'
        assert 'Invalid platform' in exc.value.message

    def test_missing_platform(self):
        with pytest.raises(ValidationError):
            normalize_platform(None)


class TestValidateRequest:

    def test_valid_pumpfun_request(self, payload, creator):
        request = validate_request(payload)
        assert request.platform is Platform.PUMPFUN
        assert request.name == 'Test Token'
        assert request.initial_buy_amount == 0.0
        assert request.creator_wallet == str(creator.pubkey())
        assert request.fee_claimers == ()

    @pytest.mark.parametrize("field", ['name', 'symbol', 'image', 'platform', 'signingCredential'])
    def test_missing_required_field(self, payload, field):
        del payload[field]
        with pytest.raises(ValidationError) as exc:
            validate_request(payload)
        assert exc.value.field == field

    def test_blank_name_is_missing(self, payload):
        payload['name'] = '   '
        with pytest.raises(ValidationError) as exc:
            validate_request(payload)
        assert exc.value.message == 'name required'

    def test_legacy_field_names(self, payload, credential):
        del payload['signingCredential']
        del payload['image']
        payload['privateKey'] = credential
        payload['imageUrl'] = 'https://example.com/a.png'
        request = validate_request(payload)
        assert request.image_url == 'https://example.com/a.png'

    def test_bad_signing_credential(self, payload):
        payload['signingCredential'] = 'not-a-key'
        with pytest.raises(ValidationError) as exc:
            validate_request(payload)
        assert exc.value.field == 'signingCredential'

    def test_bags_requires_api_key(self, payload):
        payload['platform'] = 'bags'
        with pytest.raises(ValidationError) as exc:
            validate_request(payload)
        assert exc.value.field == 'apiCredential'

    def test_bags_uses_default_api_key(self, payload):
        payload['platform'] = 'bags'
        request = validate_request(payload, default_api_key='server-key')
        assert request.api_key == 'server-key'

    def test_request_key_overrides_default(self, payload):
        payload['platform'] = 'bags'
        payload['apiCredential'] = 'caller-key'
        request = validate_request(payload, default_api_key='server-key')
        assert request.api_key == 'caller-key'

    @pytest.mark.parametrize("amount", [-1, 'abc', True])
    def test_invalid_initial_buy(self, payload, amount):
        payload['initialBuyAmount'] = amount
        with pytest.raises(ValidationError) as exc:
            validate_request(payload)
        assert exc.value.field == 'initialBuyAmount'

    def test_initial_buy_string_number(self, payload):
        payload['initialBuyAmount'] = '0.5'
        assert validate_request(payload).initial_buy_amount == 0.5

    def test_invalid_creator_wallet(self, payload):
        payload['creatorWallet'] = 'nope'
        with pytest.raises(ValidationError) as exc:
            validate_request(payload)
        assert exc.value.field == 'creatorWallet'

    def test_fee_claimers_parsed(self, payload):
        payload['feeClaimers'] = [
            {'provider': 'Twitter', 'username': '@alice', 'bps': 5000},
            {'username': 'bob', 'basisPoints': 1000},
        ]
        request = validate_request(payload)
        assert request.fee_claimers == (
            FeeClaimer(provider='twitter', username='alice', bps=5000),
            FeeClaimer(provider='twitter', username='bob', bps=1000),
        )

    @pytest.mark.parametrize("bps", [-1, 10001, 12.5, '100'])
    def test_fee_claimer_bps_range(self, payload, bps):
        payload['feeClaimers'] = [{'username': 'alice', 'bps': bps}]
        with pytest.raises(ValidationError) as exc:
            validate_request(payload)
        assert exc.value.field == 'feeClaimers[0].bps'

    def test_credentials_hidden_from_repr(self, payload, credential):
        payload['platform'] = 'bags'
        payload['apiCredential'] = 'secret-api-key'
        text = repr(validate_request(payload))
        assert credential not in text
        assert 'secret-api-key' not in text


class TestLaunchRouter:

    def test_requires_every_platform(self, launchers):
        del launchers[Platform.BAGS]
        with pytest.raises(ValueError):
            LaunchRouter(launchers, MemoryLaunchStore())

    @pytest.mark.asyncio
    async def test_dispatches_to_platform_launcher(self, launchers, payload):
        store = MemoryLaunchStore()
        router = LaunchRouter(launchers, store)
        payload['platform'] = 'bonk'

        result = await router.launch(payload)

        assert result.platform is Platform.USD1
        launchers[Platform.USD1].launch.assert_awaited_once()
        launchers[Platform.PUMPFUN].launch.assert_not_awaited()
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_validation_failure_makes_no_calls(self, launchers, payload):
        store = MemoryLaunchStore()
        router = LaunchRouter(launchers, store)
        del payload['name']

        with pytest.raises(ValidationError):
            await router.launch(payload)

        for launcher in launchers.values():
            launcher.launch.assert_not_awaited()
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_failed_launch_not_recorded(self, launchers, payload):
        store = MemoryLaunchStore()
        launchers[Platform.PUMPFUN].launch = AsyncMock(side_effect=SubmissionError('rejected'))
        router = LaunchRouter(launchers, store)

        with pytest.raises(SubmissionError):
            await router.launch(payload)
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_idempotency_key_runs_launch_once(self, launchers, payload, launch_result):
        async def slow_launch(ctx):
            await asyncio.sleep(0.01)
            return launch_result(Platform.PUMPFUN)

        launchers[Platform.PUMPFUN].launch = AsyncMock(side_effect=slow_launch)
        store = MemoryLaunchStore()
        router = LaunchRouter(launchers, store)
        payload['idempotencyKey'] = 'req-1'

        first, second = await asyncio.gather(router.launch(payload), router.launch(payload))

        assert first is second
        assert launchers[Platform.PUMPFUN].launch.await_count == 1
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_failed_idempotent_launch_can_retry(self, launchers, payload, launch_result):
        launchers[Platform.PUMPFUN].launch = AsyncMock(
            side_effect=[SubmissionError('rejected'), launch_result(Platform.PUMPFUN)]
        )
        router = LaunchRouter(launchers, MemoryLaunchStore())
        payload['idempotencyKey'] = 'req-2'

        with pytest.raises(SubmissionError):
            await router.launch(payload)
        await asyncio.sleep(0)

        result = await router.launch(payload)
        assert result.tx_hash == 'launch-sig'
        assert launchers[Platform.PUMPFUN].launch.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_builds_deadline(self, launchers, payload):
        router = LaunchRouter(launchers, MemoryLaunchStore())
        await router.launch(payload, timeout=30)

        ctx = launchers[Platform.PUMPFUN].launch.await_args.args[0]
        assert ctx.deadline.seconds == 30
        assert not ctx.deadline.expired

    @pytest.mark.asyncio
    async def test_requests_without_key_launch_separately(self, launchers, payload, launch_result):
        launchers[Platform.PUMPFUN].launch = AsyncMock(
            side_effect=lambda ctx: launch_result(Platform.PUMPFUN, str(ctx.mint.pubkey()))
        )
        store = MemoryLaunchStore()
        router = LaunchRouter(launchers, store)

        first = await router.launch(dict(payload))
        second = await router.launch(dict(payload))

        assert first.token_address != second.token_address
        assert launchers[Platform.PUMPFUN].launch.await_count == 2
        records = await store.list()
        assert [r['tokenAddress'] for r in records] == [first.token_address, second.token_address]

    @pytest.mark.asyncio
    async def test_completed_key_returns_recorded_result(self, launchers, payload):
        router = LaunchRouter(launchers, MemoryLaunchStore())
        payload['idempotencyKey'] = 'req-3'

        first = await router.launch(payload)
        second = await router.launch(payload)

        assert first is second
        assert launchers[Platform.PUMPFUN].launch.await_count == 1

    @pytest.mark.asyncio
    async def test_remembered_keys_are_capped(self, launchers, payload):
        router = LaunchRouter(launchers, MemoryLaunchStore(), max_remembered_keys=2)
        for key in ('a', 'b', 'c'):
            await router.launch(dict(payload, idempotencyKey=key))
        await asyncio.sleep(0)

        await router.launch(dict(payload, idempotencyKey='c'))
        assert launchers[Platform.PUMPFUN].launch.await_count == 3

        # 'a' was the oldest and has been forgotten
        await router.launch(dict(payload, idempotencyKey='a'))
        assert launchers[Platform.PUMPFUN].launch.await_count == 4

    @pytest.mark.asyncio
    async def test_abandoned_failed_launch_leaves_no_unretrieved_error(self, launchers, payload):
        started = asyncio.Event()

        async def failing_launch(ctx):
            started.set()
            await asyncio.sleep(0.01)
            raise SubmissionError('rejected')

        launchers[Platform.PUMPFUN].launch = AsyncMock(side_effect=failing_launch)
        router = LaunchRouter(launchers, MemoryLaunchStore())
        loop = asyncio.get_running_loop()
        reported = []
        loop.set_exception_handler(lambda _, context: reported.append(context))
        try:
            caller = asyncio.ensure_future(router.launch(payload))
            await started.wait()
            caller.cancel()
            await asyncio.sleep(0.05)
            gc.collect()
        finally:
            loop.set_exception_handler(None)

        assert caller.cancelled()
        assert reported == []
        assert launchers[Platform.PUMPFUN].launch.await_count == 1
