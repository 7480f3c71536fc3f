"""
Request validation and dispatch to the platform launchers
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Optional, Dict, Any, Mapping, Tuple

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from launchmint.database import LaunchStore
from launchmint.errors import ValidationError
from launchmint.models import (
    TOTAL_BPS,
    Platform,
    FeeClaimer,
    LaunchRequest,
    LaunchResult,
    LaunchContext,
    Deadline,
)
from launchmint.platforms import PlatformLauncher

logger = logging.getLogger('launchmint.router')

PLATFORM_ALIASES = {
    'pumpfun': Platform.PUMPFUN,
    'pump': Platform.PUMPFUN,
    'pump.fun': Platform.PUMPFUN,
    'bags': Platform.BAGS,
    'bags.fm': Platform.BAGS,
    'usd1': Platform.USD1,
    'bonk': Platform.USD1,
    'bonk.fun': Platform.USD1,
    'letsbonk': Platform.USD1,
}


def normalize_platform(value) -> Platform:
    """Map a platform name or alias to its canonical value"""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('platform', 'platform required (pumpfun, bags, or usd1)')
    platform = PLATFORM_ALIASES.get(value.strip().lower())
    if platform is None:
        raise ValidationError('platform', 'Invalid platform. Use: pumpfun, bags, or usd1')
    return platform


def _text(payload: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _parse_fee_claimers(raw) -> Tuple[FeeClaimer, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValidationError('feeClaimers', 'feeClaimers must be a list')

    claimers = []
    for index, entry in enumerate(raw):
        field = f"feeClaimers[{index}]"
        if not isinstance(entry, dict):
            raise ValidationError(field, f"{field} must be an object")
        provider = _text(entry, 'provider', 'socialProvider') or 'twitter'
        username = _text(entry, 'username')
        if not username:
            raise ValidationError(f"{field}.username")
        bps = entry.get('bps', entry.get('basisPoints'))
        if isinstance(bps, bool) or not isinstance(bps, int) or not 0 <= bps <= TOTAL_BPS:
            raise ValidationError(f"{field}.bps", f"{field}.bps must be an integer between 0 and {TOTAL_BPS}")
        claimers.append(FeeClaimer(provider=provider.lower(), username=username.lstrip('@'), bps=bps))
    return tuple(claimers)


def _decode_keypair(credential: str) -> Keypair:
    try:
        raw = base58.b58decode(credential)
    except ValueError:
        raw = b''
    if len(raw) != 64:
        raise ValidationError('signingCredential', 'signingCredential is not a valid base58 secret key')
    try:
        return Keypair.from_bytes(raw)
    except ValueError:
        raise ValidationError('signingCredential', 'signingCredential is not a valid base58 secret key')


def validate_request(payload: Mapping[str, Any], default_api_key: Optional[str] = None) -> LaunchRequest:
    """Check a raw create request and build an immutable LaunchRequest

    Fails on the first missing or invalid field. Makes no network calls.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError('body', 'Request body must be a JSON object')

    name = _text(payload, 'name')
    if not name:
        raise ValidationError('name')
    symbol = _text(payload, 'symbol')
    if not symbol:
        raise ValidationError('symbol')
    image_url = _text(payload, 'image', 'imageUrl')
    if not image_url:
        raise ValidationError('image', 'image URL required')

    platform = normalize_platform(payload.get('platform'))

    credential = _text(payload, 'signingCredential', 'privateKey')
    if not credential:
        raise ValidationError('signingCredential')
    creator = _decode_keypair(credential)

    api_key = _text(payload, 'apiCredential', 'apiKey') or default_api_key
    if platform.requires_api_key and not api_key:
        raise ValidationError('apiCredential', 'Bags API key required. Get yours at https://dev.bags.fm')

    creator_wallet = _text(payload, 'creatorWallet')
    if creator_wallet:
        try:
            Pubkey.from_string(creator_wallet)
        except ValueError:
            raise ValidationError('creatorWallet', 'creatorWallet is not a valid address')
    else:
        creator_wallet = str(creator.pubkey())

    raw_amount = payload.get('initialBuyAmount')
    if raw_amount in (None, ''):
        initial_buy = 0.0
    else:
        try:
            initial_buy = float(raw_amount)
        except (TypeError, ValueError):
            raise ValidationError('initialBuyAmount', 'initialBuyAmount must be a number')
        if isinstance(raw_amount, bool) or initial_buy < 0 or initial_buy != initial_buy:
            raise ValidationError('initialBuyAmount', 'initialBuyAmount must be a non-negative number')

    return LaunchRequest(
        platform=platform,
        name=name,
        symbol=symbol,
        image_url=image_url,
        signing_credential=credential,
        description=_text(payload, 'description') or '',
        creator_wallet=creator_wallet,
        api_key=api_key,
        twitter=_text(payload, 'twitter'),
        telegram=_text(payload, 'telegram'),
        website=_text(payload, 'website'),
        initial_buy_amount=initial_buy,
        fee_claimers=_parse_fee_claimers(payload.get('feeClaimers')),
        idempotency_key=_text(payload, 'idempotencyKey'),
    )


class LaunchRouter:
    """Validates, dispatches to one launcher per platform, records results"""

    def __init__(self, launchers: Dict[Platform, PlatformLauncher], store: LaunchStore,
                 default_api_key: Optional[str] = None, max_remembered_keys: int = 1024):
        missing = [p.value for p in Platform if p not in launchers]
        if missing:
            raise ValueError(f"No launcher registered for: {missing}")
        self.launchers = launchers
        self.store = store
        self.default_api_key = default_api_key
        self.max_remembered_keys = max_remembered_keys
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._completed: 'OrderedDict[str, asyncio.Task]' = OrderedDict()

    async def launch(self, payload: Mapping[str, Any], timeout: Optional[float] = None) -> LaunchResult:
        request = validate_request(payload, self.default_api_key)
        deadline = Deadline(timeout)

        # Launches run as their own tasks: a dropped caller does not stop one mid-flight
        key = request.idempotency_key
        if key is None:
            task = asyncio.ensure_future(self._run(request, deadline))
            task.add_done_callback(self._retrieve_exception)
            return await asyncio.shield(task)

        task = self._in_flight.get(key) or self._completed.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(request, deadline))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._finished(k, t))
        else:
            logger.info(f"Request {key} already seen, waiting on the existing launch")
        return await asyncio.shield(task)

    @staticmethod
    def _retrieve_exception(task: asyncio.Task) -> None:
        # the caller may be gone; the launcher has already logged the failure
        if not task.cancelled():
            task.exception()

    def _finished(self, key: str, task: asyncio.Task) -> None:
        self._in_flight.pop(key, None)
        # A failed launch may be retried with the same key
        if task.cancelled() or task.exception() is not None:
            return
        self._completed[key] = task
        while len(self._completed) > self.max_remembered_keys:
            self._completed.popitem(last=False)

    async def _run(self, request: LaunchRequest, deadline: Deadline) -> LaunchResult:
        launcher = self.launchers[request.platform]
        ctx = LaunchContext(request, deadline)
        logger.info(f"{ctx.prefix} Launching {request.name} ({request.symbol})")
        result = await launcher.launch(ctx)
        await self.store.append(result)
        return result
