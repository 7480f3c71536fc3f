from launchmint.services.solana_rpc import SolanaRPC
from launchmint.services.ipfs_service import IPFSService
from launchmint.services.transaction_service import TransactionSubmitter, sign_transaction
from launchmint.services.jupiter_service import JupiterService, LiquidityPreparer
from launchmint.services.bags_service import BagsClient, FeeShareDistributor
from launchmint.services.pump_sdk import PumpSdk

__all__ = [
    'SolanaRPC',
    'IPFSService',
    'TransactionSubmitter',
    'sign_transaction',
    'JupiterService',
    'LiquidityPreparer',
    'BagsClient',
    'FeeShareDistributor',
    'PumpSdk',
]
