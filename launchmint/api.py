"""
HTTP API for launching and listing tokens
"""

import logging
from typing import Optional

import aiohttp
from aiohttp import web

from launchmint import __version__
from launchmint.config import Settings
from launchmint.database import LaunchStore, open_launch_store
from launchmint.errors import LaunchError
from launchmint.models import Platform
from launchmint.platforms import PumpFunLauncher, BagsLauncher, Usd1Launcher
from launchmint.router import LaunchRouter
from launchmint.services import (
    SolanaRPC,
    IPFSService,
    TransactionSubmitter,
    JupiterService,
    LiquidityPreparer,
    BagsClient,
    FeeShareDistributor,
    PumpSdk,
)

logger = logging.getLogger('launchmint.api')


def build_router(settings: Settings, session: aiohttp.ClientSession, store: LaunchStore) -> LaunchRouter:
    """Wire the launchers to shared services"""
    rpc = SolanaRPC(session, settings.rpc_url, settings.commitment)
    submitter = TransactionSubmitter(
        rpc,
        commitment=settings.commitment,
        max_retries=settings.send_max_retries,
        retry_delay=settings.send_retry_delay_seconds,
        confirm_timeout=settings.confirm_timeout_seconds,
        poll_interval=settings.confirm_poll_seconds,
    )
    ipfs = IPFSService(session, settings.pump_ipfs_url, settings.bonk_storage_url, settings.bags_api_url)
    bags = BagsClient(session, settings.bags_api_url)
    liquidity = LiquidityPreparer(
        rpc,
        JupiterService(session, settings.jupiter_api_url, settings.usd1_swap_slippage_bps),
        submitter,
        buffer=settings.usd1_swap_buffer,
        degrade_to_create_only=settings.usd1_degrade_to_create_only,
    )
    fees = FeeShareDistributor(bags, submitter, on_unresolved=settings.fee_claimer_unresolved)

    launchers = {
        Platform.PUMPFUN: PumpFunLauncher(submitter, rpc, ipfs, PumpSdk(rpc), settings.pump_buy_slippage_bps),
        Platform.BAGS: BagsLauncher(submitter, ipfs, bags, fees, settings.bags_default_buy_sol),
        Platform.USD1: Usd1Launcher(submitter, rpc, ipfs, liquidity),
    }
    return LaunchRouter(launchers, store, default_api_key=settings.bags_api_key)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({'success': False, 'error': message}, status=status)


async def create_token(request: web.Request) -> web.Response:
    try:
        payload = await request.json()
    except ValueError:
        return _error('Request body must be valid JSON', 400)

    timeout: Optional[float] = None
    raw_timeout = request.headers.get('X-Request-Timeout')
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            return _error('X-Request-Timeout must be a number of seconds', 400)

    try:
        result = await request.app['router'].launch(payload, timeout=timeout)
    except LaunchError as e:
        logger.warning(f"Create token rejected: {e.message}")
        return _error(e.message, e.http_status)
    except Exception as e:
        logger.exception(f"Create token error: {e}")
        return _error(str(e), 500)

    return web.json_response(result.to_response())


async def list_tokens(request: web.Request) -> web.Response:
    tokens = await request.app['store'].list()
    return web.json_response({'success': True, 'count': len(tokens), 'tokens': tokens})


async def wallet_lookup(request: web.Request) -> web.Response:
    username = request.query.get('username', '').strip().lstrip('@')
    provider = request.query.get('provider', 'twitter')
    if not username:
        return _error('username required', 400)

    api_key = request.query.get('apiKey') or request.app['settings'].bags_api_key
    try:
        wallet = await request.app['bags'].lookup_wallet(username, provider, api_key)
    except LaunchError as e:
        return _error(e.message, e.http_status)
    except Exception as e:
        logger.exception(f"Wallet lookup error: {e}")
        return _error(str(e), 500)

    return web.json_response({'success': True, 'wallet': wallet, 'username': username, 'provider': provider})


async def health(request: web.Request) -> web.Response:
    return web.json_response({
        'name': 'LaunchMint',
        'version': __version__,
        'status': 'ok',
        'platforms': [platform.value for platform in Platform],
        'tokensLaunched': await request.app['store'].count(),
    })


def create_app(settings: Settings, router: Optional[LaunchRouter] = None, store: Optional[LaunchStore] = None,
               bags: Optional[BagsClient] = None) -> web.Application:
    """Build the aiohttp application

    Without an injected router the services are created on startup around a
    single shared client session.
    """
    app = web.Application()
    app['settings'] = settings
    app['store'] = store or open_launch_store(settings.launch_db_path)

    if router is not None:
        app['router'] = router
        app['bags'] = bags or BagsClient(None, settings.bags_api_url)
    else:
        async def services_ctx(app: web.Application):
            timeout = aiohttp.ClientTimeout(total=settings.http_timeout_seconds)
            session = aiohttp.ClientSession(timeout=timeout)
            app['router'] = build_router(settings, session, app['store'])
            app['bags'] = bags or BagsClient(session, settings.bags_api_url)
            yield
            await session.close()

        app.cleanup_ctx.append(services_ctx)

    app.router.add_post('/api/tokens/create', create_token)
    app.router.add_get('/api/tokens', list_tokens)
    app.router.add_get('/api/wallet/lookup', wallet_lookup)
    app.router.add_get('/health', health)
    return app
