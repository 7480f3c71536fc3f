"""
Service configuration and logging setup
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


@dataclass
class Settings:
    """Runtime settings loaded from the environment"""
    rpc_url: str = 'https://api.mainnet-beta.solana.com'
    port: int = 3000
    bags_api_key: Optional[str] = None
    launch_db_path: Optional[str] = None

    # Outbound services
    pump_ipfs_url: str = 'https://pump.fun/api/ipfs'
    bonk_storage_url: str = 'https://storage.letsbonk22.ink'
    bags_api_url: str = 'https://public-api-v2.bags.fm/api/v1'
    jupiter_api_url: str = 'https://lite-api.jup.ag/swap/v1'
    http_timeout_seconds: float = 30.0

    # Submission
    commitment: str = 'confirmed'
    send_max_retries: int = 3
    send_retry_delay_seconds: float = 1.0
    confirm_timeout_seconds: float = 90.0
    confirm_poll_seconds: float = 2.0

    # Platform tuning
    pump_buy_slippage_bps: int = 100
    bags_default_buy_sol: float = 0.01
    usd1_swap_buffer: float = 0.1
    usd1_swap_slippage_bps: int = 150
    usd1_degrade_to_create_only: bool = True
    fee_claimer_unresolved: str = 'skip'  # skip, fail

    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Settings':
        """Load configuration from environment"""
        load_dotenv()

        unresolved_policy = os.getenv('FEE_CLAIMER_UNRESOLVED', 'skip').lower()
        if unresolved_policy not in ('skip', 'fail'):
            raise ValueError(f"FEE_CLAIMER_UNRESOLVED must be 'skip' or 'fail', got {unresolved_policy!r}")

        return cls(
            rpc_url=os.getenv('RPC_URL', cls.rpc_url),
            port=int(os.getenv('PORT', str(cls.port))),
            bags_api_key=os.getenv('BAGS_API_KEY') or None,
            launch_db_path=os.getenv('LAUNCH_DB_PATH') or None,
            pump_ipfs_url=os.getenv('PUMP_IPFS_URL', cls.pump_ipfs_url),
            bonk_storage_url=os.getenv('BONK_STORAGE_URL', cls.bonk_storage_url),
            bags_api_url=os.getenv('BAGS_API_URL', cls.bags_api_url),
            jupiter_api_url=os.getenv('JUPITER_API_URL', cls.jupiter_api_url),
            http_timeout_seconds=float(os.getenv('HTTP_TIMEOUT_SECONDS', str(cls.http_timeout_seconds))),
            commitment=os.getenv('COMMITMENT', cls.commitment),
            send_max_retries=int(os.getenv('SEND_MAX_RETRIES', str(cls.send_max_retries))),
            send_retry_delay_seconds=float(os.getenv('SEND_RETRY_DELAY_SECONDS', str(cls.send_retry_delay_seconds))),
            confirm_timeout_seconds=float(os.getenv('CONFIRM_TIMEOUT_SECONDS', str(cls.confirm_timeout_seconds))),
            confirm_poll_seconds=float(os.getenv('CONFIRM_POLL_SECONDS', str(cls.confirm_poll_seconds))),
            pump_buy_slippage_bps=int(os.getenv('PUMP_BUY_SLIPPAGE_BPS', str(cls.pump_buy_slippage_bps))),
            bags_default_buy_sol=float(os.getenv('BAGS_DEFAULT_BUY_SOL', str(cls.bags_default_buy_sol))),
            usd1_swap_buffer=float(os.getenv('USD1_SWAP_BUFFER', str(cls.usd1_swap_buffer))),
            usd1_swap_slippage_bps=int(os.getenv('USD1_SWAP_SLIPPAGE_BPS', str(cls.usd1_swap_slippage_bps))),
            usd1_degrade_to_create_only=_env_bool('USD1_DEGRADE_TO_CREATE_ONLY', 'true'),
            fee_claimer_unresolved=unresolved_policy,
            log_level=os.getenv('LOG_LEVEL', cls.log_level).upper(),
        )


def setup_logging(level: str = 'INFO', log_dir: str = 'logs') -> logging.Logger:
    """Setup the launchmint logger with console and file handlers"""
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger('launchmint')
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    file_handler = logging.FileHandler(os.path.join(log_dir, 'launchmint.log'), encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level, logging.INFO))

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s'
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger
