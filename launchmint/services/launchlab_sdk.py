"""
Raydium LaunchLab program (bonk.fun): pool initialization and buy instructions
"""

import struct
from typing import List

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction, AccountMeta
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT

from launchmint.services.pump_sdk import (
    MPL_TOKEN_METADATA_PROGRAM_ID,
    anchor_discriminator,
    encode_string,
    metadata_pda,
    create_associated_token_account_idempotent,
)
from launchmint.services.solana_rpc import TOKEN_PROGRAM_ID, get_associated_token_address

LAUNCHPAD_PROGRAM_ID = Pubkey.from_string("LanMV9sAd7wArD4vJFi2qDdfnVhFxYSUg6eADduJ3uj")
USD1_LAUNCH_CONFIG = Pubkey.from_string("EPiZbnrThjyLnoQ6QQzkxeFqyL5uyg9RzNHHAudUPxBz")
BONK_PLATFORM_ID = Pubkey.from_string("FfYek5vEz23cMkWsdJwG2oa6EphsvXSHrGpdALN4g6W1")

BASE_DECIMALS = 6
DEFAULT_SUPPLY = 1_000_000_000_000_000
DEFAULT_TOTAL_SELL = 793_100_000_000_000
DEFAULT_TOTAL_FUND_RAISING = 12_500_000_000

MIGRATE_TYPES = {'amm': 0, 'cpswap': 1}

COMPUTE_UNITS = 600_000
COMPUTE_UNIT_PRICE_MICROLAMPORTS = 50_000


def _pda(seeds: List[bytes]) -> Pubkey:
    return Pubkey.find_program_address(seeds, LAUNCHPAD_PROGRAM_ID)[0]


def authority_pda() -> Pubkey:
    return _pda([b"vault_auth_seed"])


def pool_pda(mint_a: Pubkey, mint_b: Pubkey) -> Pubkey:
    return _pda([b"pool", bytes(mint_a), bytes(mint_b)])


def pool_vault_pda(pool: Pubkey, mint: Pubkey) -> Pubkey:
    return _pda([b"pool_vault", bytes(pool), bytes(mint)])


def event_authority_pda() -> Pubkey:
    return _pda([b"__event_authority"])


def compute_budget_instructions(units: int = COMPUTE_UNITS,
                                micro_lamports: int = COMPUTE_UNIT_PRICE_MICROLAMPORTS) -> List[Instruction]:
    return [set_compute_unit_limit(units), set_compute_unit_price(micro_lamports)]


def initialize_instruction(payer: Pubkey, mint_a: Pubkey, mint_b: Pubkey, name: str, symbol: str, uri: str,
                           config_id: Pubkey = USD1_LAUNCH_CONFIG, platform_id: Pubkey = BONK_PLATFORM_ID,
                           migrate_type: str = 'amm', supply: int = DEFAULT_SUPPLY,
                           total_sell: int = DEFAULT_TOTAL_SELL,
                           total_fund_raising: int = DEFAULT_TOTAL_FUND_RAISING) -> Instruction:
    pool = pool_pda(mint_a, mint_b)
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(payer, is_signer=False, is_writable=False),  # creator
        AccountMeta(config_id, is_signer=False, is_writable=False),
        AccountMeta(platform_id, is_signer=False, is_writable=False),
        AccountMeta(authority_pda(), is_signer=False, is_writable=False),
        AccountMeta(pool, is_signer=False, is_writable=True),
        AccountMeta(mint_a, is_signer=True, is_writable=True),
        AccountMeta(mint_b, is_signer=False, is_writable=False),
        AccountMeta(pool_vault_pda(pool, mint_a), is_signer=False, is_writable=True),
        AccountMeta(pool_vault_pda(pool, mint_b), is_signer=False, is_writable=True),
        AccountMeta(metadata_pda(mint_a), is_signer=False, is_writable=True),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(MPL_TOKEN_METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(RENT, is_signer=False, is_writable=False),
        AccountMeta(event_authority_pda(), is_signer=False, is_writable=False),
        AccountMeta(LAUNCHPAD_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    data = (
        anchor_discriminator("initialize")
        # MintParams
        + bytes([BASE_DECIMALS])
        + encode_string(name)
        + encode_string(symbol)
        + encode_string(uri)
        # CurveParams::Constant
        + bytes([0])
        + struct.pack('<QQQ', supply, total_sell, total_fund_raising)
        + bytes([MIGRATE_TYPES[migrate_type]])
        # VestingParams: nothing locked
        + struct.pack('<QQQ', 0, 0, 0)
    )
    return Instruction(LAUNCHPAD_PROGRAM_ID, data, accounts)


def buy_exact_in_instruction(payer: Pubkey, mint_a: Pubkey, mint_b: Pubkey, amount_in: int,
                             minimum_amount_out: int = 0, config_id: Pubkey = USD1_LAUNCH_CONFIG,
                             platform_id: Pubkey = BONK_PLATFORM_ID) -> Instruction:
    pool = pool_pda(mint_a, mint_b)
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(authority_pda(), is_signer=False, is_writable=False),
        AccountMeta(config_id, is_signer=False, is_writable=False),
        AccountMeta(platform_id, is_signer=False, is_writable=False),
        AccountMeta(pool, is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(payer, mint_a), is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(payer, mint_b), is_signer=False, is_writable=True),
        AccountMeta(pool_vault_pda(pool, mint_a), is_signer=False, is_writable=True),
        AccountMeta(pool_vault_pda(pool, mint_b), is_signer=False, is_writable=True),
        AccountMeta(mint_a, is_signer=False, is_writable=False),
        AccountMeta(mint_b, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(event_authority_pda(), is_signer=False, is_writable=False),
        AccountMeta(LAUNCHPAD_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    # share_fee_rate 0: no referral share
    data = anchor_discriminator("buy_exact_in") + struct.pack('<QQQ', amount_in, minimum_amount_out, 0)
    return Instruction(LAUNCHPAD_PROGRAM_ID, data, accounts)


def create_launchpad_instructions(payer: Pubkey, mint_a: Pubkey, mint_b: Pubkey, name: str, symbol: str,
                                  uri: str, buy_amount: int = 0, migrate_type: str = 'amm') -> List[Instruction]:
    """Pool creation, plus the creator's initial buy when buy_amount is positive

    The buy executes in the same transaction as the pool initialization, so
    the price is fixed by the fresh curve and no minimum output is enforced.
    """
    instructions = compute_budget_instructions()
    instructions.append(initialize_instruction(payer, mint_a, mint_b, name, symbol, uri, migrate_type=migrate_type))
    if buy_amount > 0:
        instructions.append(create_associated_token_account_idempotent(payer, payer, mint_a))
        instructions.append(buy_exact_in_instruction(payer, mint_a, mint_b, buy_amount))
    return instructions
