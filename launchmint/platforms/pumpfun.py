"""
PumpFun launcher
"""

from launchmint.models import LaunchContext, LaunchState, Platform
from launchmint.platforms.base import PlatformLauncher, PreparedLaunch, BuiltLaunch
from launchmint.services.ipfs_service import IPFSService
from launchmint.services.pump_sdk import PumpSdk, LAMPORTS_PER_SOL
from launchmint.services.solana_rpc import SolanaRPC
from launchmint.services.transaction_service import TransactionSubmitter, build_transaction


class PumpFunLauncher(PlatformLauncher):
    platform = Platform.PUMPFUN

    def __init__(self, submitter: TransactionSubmitter, rpc: SolanaRPC, ipfs: IPFSService,
                 sdk: PumpSdk, slippage_bps: int = 100):
        super().__init__(submitter)
        self.rpc = rpc
        self.ipfs = ipfs
        self.sdk = sdk
        self.slippage_bps = slippage_bps

    async def prepare(self, ctx: LaunchContext) -> PreparedLaunch:
        ctx.deadline.check("metadata upload")
        self.logger.info(f"{ctx.prefix} Uploading to IPFS...")
        metadata = await self.ipfs.upload_pump_metadata(ctx.request)
        ctx.advance(LaunchState.METADATA_UPLOADED)
        return PreparedLaunch(
            metadata=metadata,
            token_address=str(ctx.mint.pubkey()),
            buy_amount=ctx.request.initial_buy_amount or 0.0,
        )

    async def build(self, ctx: LaunchContext, prepared: PreparedLaunch) -> BuiltLaunch:
        request = ctx.request
        creator = ctx.creator.pubkey()
        mint = ctx.mint.pubkey()

        if prepared.buy_amount > 0:
            global_state = await self.sdk.fetch_global()
            sol_amount = int(prepared.buy_amount * LAMPORTS_PER_SOL)
            self.logger.info(f"{ctx.prefix} Creating token with initial buy of {prepared.buy_amount} SOL...")
            instructions = self.sdk.create_and_buy_instructions(
                global_state, mint, request.name, request.symbol, prepared.metadata.uri,
                creator=creator, user=creator, sol_amount=sol_amount, slippage_bps=self.slippage_bps,
            )
        else:
            self.logger.info(f"{ctx.prefix} Creating token...")
            instructions = [
                self.sdk.create_instruction(mint, request.name, request.symbol, prepared.metadata.uri,
                                            creator=creator, user=creator)
            ]

        blockhash, last_valid = await self.rpc.get_latest_blockhash('confirmed')
        tx = build_transaction(instructions, creator, blockhash, [ctx.creator, ctx.mint], legacy=True)
        return BuiltLaunch(transaction=tx, last_valid_block_height=last_valid)
