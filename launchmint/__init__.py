"""
LaunchMint - token launch API for Solana
Supports: PumpFun | Bags.fm | USD1/Bonk.fun
"""

__version__ = '2.0.0'
