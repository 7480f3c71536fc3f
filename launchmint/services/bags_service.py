"""
Bags.fm API client and fee-share configuration
"""

import asyncio
import logging
from typing import Optional, List, Dict, Any, Sequence, Tuple

import aiohttp
import base58

from launchmint.errors import ConfigError, SubmissionError, WalletNotFoundError
from launchmint.models import LaunchContext, FeeClaimer, FeeAllocation, TOTAL_BPS
from launchmint.services.transaction_service import TransactionSubmitter


def creator_bps(claimers: Sequence[FeeClaimer]) -> int:
    """Basis points left for the creator once every claimer is paid"""
    remaining = TOTAL_BPS - sum(claimer.bps for claimer in claimers)
    if remaining < 0:
        raise ConfigError(f"fee claimer total exceeds {TOTAL_BPS} bps")
    return remaining


def compute_allocations(creator_wallet: str, claimers: Sequence[FeeClaimer],
                        wallets: Dict[FeeClaimer, Optional[str]], on_unresolved: str = 'skip') -> List[FeeAllocation]:
    """Fee-share entries for the config service, creator first

    An unresolved claimer either fails the launch or has its share returned to
    the creator, so the entries always total 10000 bps.
    """
    creator_share = creator_bps(claimers)
    claimer_entries = []
    for claimer in claimers:
        wallet = wallets.get(claimer)
        if wallet:
            if claimer.bps > 0:
                claimer_entries.append(FeeAllocation(wallet=wallet, bps=claimer.bps))
            continue
        if on_unresolved == 'fail':
            raise ConfigError(f"Could not resolve {claimer.provider} user @{claimer.username} to a wallet")
        creator_share += claimer.bps

    allocations = []
    if creator_share > 0:
        allocations.append(FeeAllocation(wallet=creator_wallet, bps=creator_share))
    return allocations + claimer_entries


class BagsClient:
    """Calls to the Bags public API"""

    def __init__(self, session: aiohttp.ClientSession, api_url: str):
        self.session = session
        self.api_url = api_url.rstrip('/')
        self.logger = logging.getLogger('launchmint.bags')

    async def _request(self, method: str, path: str, api_key: Optional[str],
                       **kwargs) -> Tuple[int, Dict[str, Any]]:
        headers = {'x-api-key': api_key} if api_key else {}
        async with self.session.request(method, f"{self.api_url}{path}", headers=headers, **kwargs) as response:
            try:
                data = await response.json(content_type=None)
            except ValueError:
                data = {}
            return response.status, data if isinstance(data, dict) else {}

    async def lookup_wallet(self, username: str, provider: str = 'twitter',
                            api_key: Optional[str] = None) -> str:
        """Resolve a social handle to the wallet Bags associates with it"""
        params = {'username': username, 'provider': provider}
        try:
            status, data = await self._request('GET', '/token-launch/fee-share/wallet/v2', api_key, params=params)
        except aiohttp.ClientError as e:
            raise WalletNotFoundError(f"Wallet lookup failed: {e}")
        except asyncio.TimeoutError:
            raise WalletNotFoundError(f"Wallet lookup for @{username} timed out")

        wallet = (data.get('response') or {}).get('wallet') if data.get('success') else None
        if status != 200 or not wallet:
            raise WalletNotFoundError('Wallet not found')
        return wallet

    async def create_fee_share_config(self, payer: str, base_mint: str, allocations: List[FeeAllocation],
                                      api_key: str) -> Dict[str, Any]:
        body = {
            'payer': payer,
            'baseMint': base_mint,
            'feeClaimers': [allocation.to_payload() for allocation in allocations],
        }
        try:
            status, data = await self._request('POST', '/fee-share/config', api_key, json=body)
        except aiohttp.ClientError as e:
            raise ConfigError(f"Fee share config request failed: {e}")
        except asyncio.TimeoutError:
            raise ConfigError("Fee share config request timed out")
        if status != 200 or not data.get('success'):
            raise ConfigError(data.get('error') or 'Failed to create config')
        return data.get('response') or {}

    async def create_launch_transaction(self, metadata_url: str, token_mint: str, launch_wallet: str,
                                        initial_buy_lamports: int, config_key: str, api_key: str) -> bytes:
        body = {
            'metadataUrl': metadata_url,
            'tokenMint': token_mint,
            'launchWallet': launch_wallet,
            'initialBuyLamports': initial_buy_lamports,
            'configKey': config_key,
        }
        try:
            status, data = await self._request('POST', '/token-launch/create-launch-transaction', api_key, json=body)
        except aiohttp.ClientError as e:
            raise SubmissionError(f"Launch transaction request failed: {e}")
        except asyncio.TimeoutError:
            raise SubmissionError("Launch transaction request timed out")
        if status != 200 or not data.get('success'):
            raise SubmissionError(data.get('error') or 'Failed to create launch tx')

        response = data.get('response')
        encoded = response.get('transaction') if isinstance(response, dict) else response
        if not encoded:
            raise SubmissionError("Bags returned no launch transaction")
        return base58.b58decode(encoded)


class FeeShareDistributor:
    """Resolve fee claimers and register the split with Bags"""

    def __init__(self, bags: BagsClient, submitter: TransactionSubmitter, on_unresolved: str = 'skip'):
        self.bags = bags
        self.submitter = submitter
        self.on_unresolved = on_unresolved
        self.logger = logging.getLogger('launchmint.fees')

    async def resolve_wallets(self, ctx: LaunchContext,
                              claimers: Sequence[FeeClaimer]) -> Dict[FeeClaimer, Optional[str]]:
        """Look up claimer wallets one at a time"""
        wallets: Dict[FeeClaimer, Optional[str]] = {}
        for claimer in claimers:
            ctx.deadline.check(f"wallet lookup for @{claimer.username}")
            try:
                wallets[claimer] = await self.bags.lookup_wallet(claimer.username, claimer.provider,
                                                                  ctx.request.api_key)
            except WalletNotFoundError:
                self.logger.warning(
                    f"{ctx.prefix} No wallet for {claimer.provider} @{claimer.username} ({claimer.bps} bps)"
                )
                wallets[claimer] = None
        return wallets

    async def configure(self, ctx: LaunchContext, token_mint: str) -> str:
        """Submit the allocation and confirm each config transaction in order

        Returns the config key the launch transaction must reference.
        """
        claimers = ctx.request.fee_claimers
        creator_bps(claimers)

        creator = str(ctx.creator.pubkey())
        wallets = await self.resolve_wallets(ctx, claimers)
        allocations = compute_allocations(creator, claimers, wallets, self.on_unresolved)
        self.logger.info(
            f"{ctx.prefix} Fee split: " + ", ".join(f"{a.wallet[:6]}...={a.bps}" for a in allocations)
        )

        ctx.deadline.check("fee share config")
        response = await self.bags.create_fee_share_config(creator, token_mint, allocations, ctx.request.api_key)

        transactions = response.get('transactions') or []
        for index, encoded in enumerate(transactions, start=1):
            ctx.deadline.check(f"fee config transaction {index}")
            signature = await self.submitter.submit_serialized(
                base58.b58decode(encoded), [ctx.creator], ctx.deadline, skip_preflight=True
            )
            self.logger.info(f"{ctx.prefix} Config tx {index}/{len(transactions)}: {signature}")

        config_key = response.get('meteoraConfigKey')
        if not config_key:
            raise ConfigError('Fee share config returned no config key')
        self.logger.info(f"{ctx.prefix} Config key: {config_key}")
        return config_key
