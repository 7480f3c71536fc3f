"""
Bags.fm launcher
"""

from solders.transaction import VersionedTransaction

from launchmint.errors import SubmissionError
from launchmint.models import LaunchContext, LaunchState, Platform
from launchmint.platforms.base import PlatformLauncher, PreparedLaunch, BuiltLaunch
from launchmint.services.bags_service import BagsClient, FeeShareDistributor, creator_bps
from launchmint.services.ipfs_service import IPFSService
from launchmint.services.pump_sdk import LAMPORTS_PER_SOL
from launchmint.services.transaction_service import TransactionSubmitter, sign_transaction


class BagsLauncher(PlatformLauncher):
    """Bags issues the mint and assembles the launch transaction remotely"""
    platform = Platform.BAGS

    def __init__(self, submitter: TransactionSubmitter, ipfs: IPFSService, bags: BagsClient,
                 fees: FeeShareDistributor, default_buy_sol: float = 0.01):
        super().__init__(submitter)
        self.ipfs = ipfs
        self.bags = bags
        self.fees = fees
        self.default_buy_sol = default_buy_sol

    async def prepare(self, ctx: LaunchContext) -> PreparedLaunch:
        request = ctx.request
        # Reject an impossible split before anything is uploaded
        creator_bps(request.fee_claimers)

        ctx.deadline.check("metadata upload")
        self.logger.info(f"{ctx.prefix} Creating token metadata...")
        metadata = await self.ipfs.upload_bags_metadata(request, request.api_key)
        ctx.advance(LaunchState.METADATA_UPLOADED)

        self.logger.info(f"{ctx.prefix} Creating fee share config...")
        config_key = await self.fees.configure(ctx, metadata.token_mint)
        ctx.advance(LaunchState.FEE_CONFIGURED)

        return PreparedLaunch(
            metadata=metadata,
            token_address=metadata.token_mint,
            buy_amount=request.initial_buy_amount or self.default_buy_sol,
            config_key=config_key,
        )

    async def build(self, ctx: LaunchContext, prepared: PreparedLaunch) -> BuiltLaunch:
        self.logger.info(f"{ctx.prefix} Creating launch transaction...")
        tx_bytes = await self.bags.create_launch_transaction(
            metadata_url=prepared.metadata.uri,
            token_mint=prepared.token_address,
            launch_wallet=str(ctx.creator.pubkey()),
            initial_buy_lamports=int(prepared.buy_amount * LAMPORTS_PER_SOL),
            config_key=prepared.config_key,
            api_key=ctx.request.api_key,
        )
        try:
            tx = VersionedTransaction.from_bytes(tx_bytes)
        except ValueError as e:
            raise SubmissionError(f"Could not decode Bags launch transaction: {e}")
        return BuiltLaunch(transaction=sign_transaction(tx, [ctx.creator]), skip_preflight=True)
