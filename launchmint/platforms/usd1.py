"""
USD1 / Bonk.fun launcher on Raydium LaunchLab
"""

from launchmint.errors import SubmissionError
from launchmint.models import LaunchContext, LaunchState, Platform
from launchmint.platforms.base import PlatformLauncher, PreparedLaunch, BuiltLaunch
from launchmint.services.ipfs_service import IPFSService
from launchmint.services.jupiter_service import LiquidityPreparer, USD1_MINT, USD1_DECIMALS
from launchmint.services.launchlab_sdk import USD1_LAUNCH_CONFIG, create_launchpad_instructions, pool_pda
from launchmint.services.solana_rpc import SolanaRPC
from launchmint.services.transaction_service import TransactionSubmitter, build_transaction


class Usd1Launcher(PlatformLauncher):
    platform = Platform.USD1

    def __init__(self, submitter: TransactionSubmitter, rpc: SolanaRPC, ipfs: IPFSService,
                 liquidity: LiquidityPreparer):
        super().__init__(submitter)
        self.rpc = rpc
        self.ipfs = ipfs
        self.liquidity = liquidity

    async def prepare(self, ctx: LaunchContext) -> PreparedLaunch:
        ctx.deadline.check("metadata upload")
        self.logger.info(f"{ctx.prefix} Uploading metadata...")
        metadata = await self.ipfs.upload_bonk_metadata(ctx.request)
        ctx.advance(LaunchState.METADATA_UPLOADED)

        self.logger.info(f"{ctx.prefix} Fetching USD1 config...")
        if await self.rpc.get_account_info(USD1_LAUNCH_CONFIG) is None:
            raise SubmissionError("USD1 config not found on chain")

        buy_amount = 0.0
        if ctx.request.initial_buy_amount > 0:
            ctx.deadline.check("liquidity preparation")
            buy_amount = await self.liquidity.prepare(ctx, ctx.request.initial_buy_amount)
            ctx.advance(LaunchState.LIQUIDITY_PREPARED)

        mint = ctx.mint.pubkey()
        return PreparedLaunch(
            metadata=metadata,
            token_address=str(mint),
            buy_amount=buy_amount,
            pool_address=str(pool_pda(mint, USD1_MINT)),
        )

    async def build(self, ctx: LaunchContext, prepared: PreparedLaunch) -> BuiltLaunch:
        request = ctx.request
        creator = ctx.creator.pubkey()
        buy_amount = round(prepared.buy_amount * 10 ** USD1_DECIMALS)
        self.logger.info(f"{ctx.prefix} Creating launchpad token (createOnly: {buy_amount == 0}, buyAmount: {buy_amount})")

        instructions = create_launchpad_instructions(
            creator, ctx.mint.pubkey(), USD1_MINT, request.name, request.symbol, prepared.metadata.uri,
            buy_amount=buy_amount,
        )
        blockhash, last_valid = await self.rpc.get_latest_blockhash()
        tx = build_transaction(instructions, creator, blockhash, [ctx.creator, ctx.mint], legacy=False)
        return BuiltLaunch(transaction=tx, last_valid_block_height=last_valid)
