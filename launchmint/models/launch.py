"""
Launch request, result and per-attempt state models
"""

import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, List, Dict, Any

from solders.keypair import Keypair

from launchmint.errors import DeadlineExceededError

logger = logging.getLogger('launchmint.models')

TOTAL_BPS = 10000


class Platform(str, Enum):
    """Canonical launch platforms"""
    PUMPFUN = 'pumpfun'
    BAGS = 'bags'
    USD1 = 'usd1'

    @property
    def requires_api_key(self) -> bool:
        return self is Platform.BAGS

    @property
    def label(self) -> str:
        return {'pumpfun': 'PumpFun', 'bags': 'Bags', 'usd1': 'USD1'}[self.value]

    def explorer_url(self, token_address: str) -> str:
        host = {'pumpfun': 'pump.fun', 'bags': 'bags.fm', 'usd1': 'bonk.fun'}[self.value]
        return f"https://{host}/{token_address}"


@dataclass(frozen=True)
class FeeClaimer:
    """A social handle that should receive a share of trading fees"""
    provider: str
    username: str
    bps: int


@dataclass(frozen=True)
class FeeAllocation:
    """A resolved fee-share entry"""
    wallet: str
    bps: int

    def to_payload(self) -> Dict[str, Any]:
        return {'user': self.wallet, 'userBps': self.bps}


@dataclass(frozen=True)
class LaunchRequest:
    """A validated token launch request"""
    platform: Platform
    name: str
    symbol: str
    image_url: str
    signing_credential: str = field(repr=False)
    description: str = ''
    creator_wallet: Optional[str] = None
    api_key: Optional[str] = field(default=None, repr=False)
    twitter: Optional[str] = None
    telegram: Optional[str] = None
    website: Optional[str] = None
    initial_buy_amount: float = 0.0  # SOL for pumpfun/bags, USD1 for usd1
    fee_claimers: Tuple[FeeClaimer, ...] = ()
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class UploadedMetadata:
    """Content URI for the token metadata"""
    uri: str
    token_mint: Optional[str] = None  # Bags issues the mint alongside the metadata


@dataclass(frozen=True)
class SwapQuote:
    """Aggregator quote, valid only for the request that fetched it"""
    in_amount: int
    out_amount: int
    raw: Dict[str, Any] = field(repr=False)


@dataclass(frozen=True)
class SwapResult:
    signature: str
    out_amount: int


@dataclass
class LaunchResult:
    """Normalized outcome of a successful launch"""
    platform: Platform
    token_address: str
    tx_hash: str
    url: str
    pool_address: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    creator_wallet: Optional[str] = None
    launched_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_response(self) -> Dict[str, Any]:
        response = {
            'success': True,
            'platform': self.platform.value,
            'tokenAddress': self.token_address,
            'txHash': self.tx_hash,
            'url': self.url,
        }
        if self.pool_address:
            response['poolAddress'] = self.pool_address
        return response

    def to_record(self) -> Dict[str, Any]:
        record = {
            'platform': self.platform.value,
            'name': self.name,
            'symbol': self.symbol,
            'tokenAddress': self.token_address,
            'txHash': self.tx_hash,
            'url': self.url,
            'creatorWallet': self.creator_wallet,
            'launchedAt': self.launched_at,
        }
        if self.pool_address:
            record['poolAddress'] = self.pool_address
        return record


class LaunchState(str, Enum):
    VALIDATED = 'validated'
    METADATA_UPLOADED = 'metadata_uploaded'
    LIQUIDITY_PREPARED = 'liquidity_prepared'
    FEE_CONFIGURED = 'fee_configured'
    SUBMITTED = 'submitted'
    CONFIRMED = 'confirmed'
    FAILED = 'failed'


TERMINAL_STATES = (LaunchState.CONFIRMED, LaunchState.FAILED)


class Deadline:
    """Caller-side time budget threaded through every launch stage"""

    def __init__(self, seconds: Optional[float] = None):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds if seconds is not None else None

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, stage: str) -> None:
        if self.expired:
            raise DeadlineExceededError(f"Deadline of {self.seconds}s exceeded before {stage}")


class LaunchContext:
    """Mutable state of a single launch attempt

    The mint identity is generated here and lives only as long as the attempt.
    """

    def __init__(self, request: LaunchRequest, deadline: Optional[Deadline] = None):
        self.request = request
        self.deadline = deadline or Deadline()
        self.creator = Keypair.from_base58_string(request.signing_credential)
        self.mint = Keypair()
        self.state = LaunchState.VALIDATED
        self.history: List[LaunchState] = [LaunchState.VALIDATED]
        self.error: Optional[Exception] = None

    @property
    def prefix(self) -> str:
        return f"[{self.request.platform.label}]"

    def advance(self, state: LaunchState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Launch already {self.state.value}, cannot move to {state.value}")
        logger.debug(f"{self.prefix} {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, error: Exception) -> None:
        if self.state in TERMINAL_STATES:
            return
        logger.debug(f"{self.prefix} {self.state.value} -> failed: {error}")
        self.error = error
        self.state = LaunchState.FAILED
        self.history.append(LaunchState.FAILED)
