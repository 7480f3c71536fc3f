"""
Common launch pipeline shared by every platform
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from solders.transaction import VersionedTransaction

from launchmint.models import LaunchContext, LaunchResult, LaunchState, Platform, UploadedMetadata
from launchmint.services.transaction_service import TransactionSubmitter


@dataclass
class PreparedLaunch:
    """Everything gathered before the launch transaction is built"""
    metadata: UploadedMetadata
    token_address: str
    buy_amount: float = 0.0
    config_key: Optional[str] = None
    pool_address: Optional[str] = None


@dataclass
class BuiltLaunch:
    """A signed launch transaction ready for submission"""
    transaction: VersionedTransaction
    last_valid_block_height: Optional[int] = None
    skip_preflight: bool = False


class PlatformLauncher(ABC):
    """prepare -> build -> submit, then normalize the result"""
    platform: Platform

    def __init__(self, submitter: TransactionSubmitter):
        self.submitter = submitter
        self.logger = logging.getLogger(f'launchmint.platforms.{self.platform.value}')

    @abstractmethod
    async def prepare(self, ctx: LaunchContext) -> PreparedLaunch:
        ...

    @abstractmethod
    async def build(self, ctx: LaunchContext, prepared: PreparedLaunch) -> BuiltLaunch:
        ...

    async def submit(self, ctx: LaunchContext, built: BuiltLaunch) -> str:
        ctx.deadline.check("submission")
        ctx.advance(LaunchState.SUBMITTED)
        return await self.submitter.submit(
            built.transaction, built.last_valid_block_height, ctx.deadline, skip_preflight=built.skip_preflight
        )

    def normalize(self, ctx: LaunchContext, prepared: PreparedLaunch, signature: str) -> LaunchResult:
        request = ctx.request
        return LaunchResult(
            platform=self.platform,
            token_address=prepared.token_address,
            tx_hash=signature,
            url=self.platform.explorer_url(prepared.token_address),
            pool_address=prepared.pool_address,
            name=request.name,
            symbol=request.symbol,
            creator_wallet=request.creator_wallet or str(ctx.creator.pubkey()),
        )

    async def launch(self, ctx: LaunchContext) -> LaunchResult:
        try:
            prepared = await self.prepare(ctx)
            ctx.deadline.check("transaction build")
            built = await self.build(ctx, prepared)
            signature = await self.submit(ctx, built)
        except Exception as e:
            ctx.fail(e)
            self.logger.error(f"{ctx.prefix} Launch failed in state {ctx.history[-2].value}: {e}")
            raise

        ctx.advance(LaunchState.CONFIRMED)
        self.logger.info(f"{ctx.prefix} Token launched: {prepared.token_address}")
        return self.normalize(ctx, prepared, signature)
