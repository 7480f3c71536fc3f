"""
USD1 liquidity via the Jupiter swap aggregator
"""

import math
import base64
import asyncio
import logging
from typing import Optional, Tuple

import aiohttp
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from launchmint.errors import SwapError, LaunchError, RpcError
from launchmint.models import LaunchContext, SwapQuote, SwapResult
from launchmint.services.solana_rpc import SolanaRPC
from launchmint.services.transaction_service import TransactionSubmitter, sign_transaction

USD1_MINT = Pubkey.from_string("USD1ttGY1N17NEEHLmELoaybftRBUSErhqYiQzvEmuB")
WSOL_MINT = Pubkey.from_string("So11111111111111111111111111111111111111112")
USD1_DECIMALS = 6


class JupiterService:
    """Quote and swap-transaction endpoints of the Jupiter API"""

    def __init__(self, session: aiohttp.ClientSession, api_url: str, slippage_bps: int = 150):
        self.session = session
        self.api_url = api_url.rstrip('/')
        self.slippage_bps = slippage_bps
        self.logger = logging.getLogger('launchmint.jupiter')

    async def quote_exact_out(self, out_amount: int, input_mint: Pubkey = WSOL_MINT,
                              output_mint: Pubkey = USD1_MINT) -> SwapQuote:
        params = {
            'inputMint': str(input_mint),
            'outputMint': str(output_mint),
            'amount': str(out_amount),
            'swapMode': 'ExactOut',
            'slippageBps': str(self.slippage_bps),
        }
        try:
            async with self.session.get(f"{self.api_url}/quote", params=params) as response:
                if response.status != 200:
                    raise SwapError(f"Jupiter quote failed: HTTP {response.status}")
                quote = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise SwapError(f"Jupiter quote failed: {e}")
        except asyncio.TimeoutError:
            raise SwapError("Jupiter quote timed out")

        try:
            return SwapQuote(in_amount=int(quote['inAmount']), out_amount=int(quote['outAmount']), raw=quote)
        except (KeyError, TypeError, ValueError):
            raise SwapError("Jupiter quote response missing amounts")

    async def build_swap(self, quote: SwapQuote, owner: Pubkey) -> Tuple[VersionedTransaction, Optional[int]]:
        """Swap transaction plus the last block height its blockhash is valid for"""
        body = {
            'quoteResponse': quote.raw,
            'userPublicKey': str(owner),
            'wrapAndUnwrapSol': True,
            'dynamicComputeUnitLimit': True,
            'prioritizationFeeLamports': 'auto',
        }
        try:
            async with self.session.post(f"{self.api_url}/swap", json=body) as response:
                if response.status != 200:
                    raise SwapError(f"Jupiter swap failed: HTTP {response.status}")
                swap = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise SwapError(f"Jupiter swap failed: {e}")
        except asyncio.TimeoutError:
            raise SwapError("Jupiter swap request timed out")

        encoded = swap.get('swapTransaction') if isinstance(swap, dict) else None
        if not encoded:
            raise SwapError("No swap transaction returned")
        try:
            tx = VersionedTransaction.from_bytes(base64.b64decode(encoded))
        except ValueError as e:
            raise SwapError(f"Could not decode swap transaction: {e}")

        last_valid = swap.get('lastValidBlockHeight')
        return tx, int(last_valid) if last_valid is not None else None


class LiquidityPreparer:
    """Make sure the creator holds enough USD1 for the initial buy"""

    def __init__(self, rpc: SolanaRPC, jupiter: JupiterService, submitter: TransactionSubmitter,
                 buffer: float = 0.1, degrade_to_create_only: bool = True):
        self.rpc = rpc
        self.jupiter = jupiter
        self.submitter = submitter
        self.buffer = buffer
        self.degrade_to_create_only = degrade_to_create_only
        self.logger = logging.getLogger('launchmint.liquidity')

    async def balance(self, owner: Pubkey) -> float:
        return await self.rpc.get_token_balance(owner, USD1_MINT, USD1_DECIMALS)

    async def swap_sol_to_usd1(self, ctx: LaunchContext, usd1_amount: float) -> Optional[SwapResult]:
        if usd1_amount <= 0:
            return None

        # round first so float noise (1.1 -> 1100000.0000000002) does not add a unit
        out_amount = math.ceil(round(usd1_amount * 10 ** USD1_DECIMALS, 3))
        self.logger.info(f"{ctx.prefix} Swapping SOL -> {usd1_amount} USD1...")

        quote = await self.jupiter.quote_exact_out(out_amount)
        self.logger.info(f"{ctx.prefix} Will spend ~{quote.in_amount / 1e9:.4f} SOL")

        # without a height from Jupiter only the confirm timeout bounds the wait
        tx, last_valid = await self.jupiter.build_swap(quote, ctx.creator.pubkey())
        try:
            signed = sign_transaction(tx, [ctx.creator])
            signature = await self.submitter.submit(signed, last_valid, ctx.deadline)
        except (LaunchError, RpcError) as e:
            raise SwapError(f"Swap transaction failed: {e}")

        self.logger.info(f"{ctx.prefix} Swap confirmed: {signature}")
        return SwapResult(signature=signature, out_amount=quote.out_amount)

    async def prepare(self, ctx: LaunchContext, amount: float) -> float:
        """Return the USD1 amount the launch may spend on its initial buy

        0 means create-only.
        """
        if not amount or amount <= 0:
            return 0.0

        owner = ctx.creator.pubkey()
        balance = await self.balance(owner)
        self.logger.info(f"{ctx.prefix} Current USD1 balance: {balance}")

        if balance < amount:
            missing = amount - balance + self.buffer
            await self.swap_sol_to_usd1(ctx, missing)
            balance = await self.balance(owner)
            self.logger.info(f"{ctx.prefix} USD1 balance after swap: {balance}")

        if balance >= amount:
            return amount

        if not self.degrade_to_create_only:
            raise SwapError(f"USD1 balance {balance} still below requested buy of {amount} after swap")

        self.logger.warning(f"{ctx.prefix} USD1 balance {balance} below {amount} after swap, launching create-only")
        return 0.0
