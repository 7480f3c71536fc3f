"""
pump.fun bonding-curve program: global state and instruction builders
"""

import struct
import hashlib
from dataclasses import dataclass
from typing import List, Optional

from solders.instruction import Instruction, AccountMeta
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT

from launchmint.errors import SubmissionError
from launchmint.services.solana_rpc import (
    TOKEN_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SolanaRPC,
    get_associated_token_address,
)

PUMP_PROGRAM_ID = Pubkey.from_string("6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P")
PUMP_FEE_PROGRAM_ID = Pubkey.from_string("pfeeUxB6jkeY1Hxd7CsFCAjcbHA9rWtchMGdZ6VojVZ")
MPL_TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

LAMPORTS_PER_SOL = 1_000_000_000
TOKEN_DECIMALS = 6


def anchor_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def encode_string(value: str) -> bytes:
    raw = value.encode('utf-8')
    return struct.pack('<I', len(raw)) + raw


def _pda(seeds: List[bytes], program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    return Pubkey.find_program_address(seeds, program_id)[0]


def global_pda() -> Pubkey:
    return _pda([b"global"])


def mint_authority_pda() -> Pubkey:
    return _pda([b"mint-authority"])


def bonding_curve_pda(mint: Pubkey) -> Pubkey:
    return _pda([b"bonding-curve", bytes(mint)])


def creator_vault_pda(creator: Pubkey) -> Pubkey:
    return _pda([b"creator-vault", bytes(creator)])


def event_authority_pda() -> Pubkey:
    return _pda([b"__event_authority"])


def global_volume_accumulator_pda() -> Pubkey:
    return _pda([b"global_volume_accumulator"])


def user_volume_accumulator_pda(user: Pubkey) -> Pubkey:
    return _pda([b"user_volume_accumulator", bytes(user)])


def fee_config_pda() -> Pubkey:
    return _pda([b"fee_config", bytes(PUMP_PROGRAM_ID)], PUMP_FEE_PROGRAM_ID)


def metadata_pda(mint: Pubkey) -> Pubkey:
    return _pda([b"metadata", bytes(MPL_TOKEN_METADATA_PROGRAM_ID), bytes(mint)], MPL_TOKEN_METADATA_PROGRAM_ID)


@dataclass(frozen=True)
class PumpGlobal:
    """Decoded pump.fun Global account"""
    initialized: bool
    authority: Pubkey
    fee_recipient: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int
    creator_fee_basis_points: int = 0

    @classmethod
    def decode(cls, data: bytes) -> 'PumpGlobal':
        if len(data) < 8 + 1 + 32 + 32 + 8 * 5:
            raise ValueError(f"Global account too short: {len(data)} bytes")
        offset = 8
        initialized = bool(data[offset])
        offset += 1
        authority = Pubkey.from_bytes(data[offset:offset + 32])
        offset += 32
        fee_recipient = Pubkey.from_bytes(data[offset:offset + 32])
        offset += 32
        (virtual_tokens, virtual_sol, real_tokens, total_supply, fee_bps) = struct.unpack_from('<5Q', data, offset)
        offset += 40

        # withdraw_authority, enable_migrate, pool_migration_fee, then creator_fee_basis_points
        creator_fee_bps = 0
        creator_fee_offset = offset + 32 + 1 + 8
        if len(data) >= creator_fee_offset + 8:
            (creator_fee_bps,) = struct.unpack_from('<Q', data, creator_fee_offset)

        return cls(
            initialized=initialized,
            authority=authority,
            fee_recipient=fee_recipient,
            initial_virtual_token_reserves=virtual_tokens,
            initial_virtual_sol_reserves=virtual_sol,
            initial_real_token_reserves=real_tokens,
            token_total_supply=total_supply,
            fee_basis_points=fee_bps,
            creator_fee_basis_points=creator_fee_bps,
        )


def buy_token_amount_from_sol(global_state: PumpGlobal, sol_amount: int) -> int:
    """Tokens a fresh bonding curve yields for sol_amount lamports, after fees"""
    if sol_amount <= 0:
        return 0
    total_fee_bps = global_state.fee_basis_points + global_state.creator_fee_basis_points
    input_amount = sol_amount * 10000 // (total_fee_bps + 10000)
    virtual_sol = global_state.initial_virtual_sol_reserves
    virtual_tokens = global_state.initial_virtual_token_reserves
    tokens = input_amount * virtual_tokens // (virtual_sol + input_amount)
    return min(tokens, global_state.initial_real_token_reserves)


class PumpSdk:
    """Builds unsigned pump.fun instructions"""

    def __init__(self, rpc: SolanaRPC):
        self.rpc = rpc

    async def fetch_global(self) -> PumpGlobal:
        data = await self.rpc.get_account_info(global_pda())
        if data is None:
            raise SubmissionError("pump.fun global account not found")
        return PumpGlobal.decode(data)

    def create_instruction(self, mint: Pubkey, name: str, symbol: str, uri: str,
                           creator: Pubkey, user: Pubkey) -> Instruction:
        bonding_curve = bonding_curve_pda(mint)
        accounts = [
            AccountMeta(mint, is_signer=True, is_writable=True),
            AccountMeta(mint_authority_pda(), is_signer=False, is_writable=False),
            AccountMeta(bonding_curve, is_signer=False, is_writable=True),
            AccountMeta(get_associated_token_address(bonding_curve, mint), is_signer=False, is_writable=True),
            AccountMeta(global_pda(), is_signer=False, is_writable=False),
            AccountMeta(MPL_TOKEN_METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(metadata_pda(mint), is_signer=False, is_writable=True),
            AccountMeta(user, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(RENT, is_signer=False, is_writable=False),
            AccountMeta(event_authority_pda(), is_signer=False, is_writable=False),
            AccountMeta(PUMP_PROGRAM_ID, is_signer=False, is_writable=False),
        ]
        data = (
            anchor_discriminator("create")
            + encode_string(name)
            + encode_string(symbol)
            + encode_string(uri)
            + bytes(creator)
        )
        return Instruction(PUMP_PROGRAM_ID, data, accounts)

    def buy_instruction(self, global_state: PumpGlobal, mint: Pubkey, creator: Pubkey, user: Pubkey,
                        amount: int, max_sol_cost: int) -> Instruction:
        bonding_curve = bonding_curve_pda(mint)
        accounts = [
            AccountMeta(global_pda(), is_signer=False, is_writable=False),
            AccountMeta(global_state.fee_recipient, is_signer=False, is_writable=True),
            AccountMeta(mint, is_signer=False, is_writable=False),
            AccountMeta(bonding_curve, is_signer=False, is_writable=True),
            AccountMeta(get_associated_token_address(bonding_curve, mint), is_signer=False, is_writable=True),
            AccountMeta(get_associated_token_address(user, mint), is_signer=False, is_writable=True),
            AccountMeta(user, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(creator_vault_pda(creator), is_signer=False, is_writable=True),
            AccountMeta(event_authority_pda(), is_signer=False, is_writable=False),
            AccountMeta(PUMP_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(global_volume_accumulator_pda(), is_signer=False, is_writable=True),
            AccountMeta(user_volume_accumulator_pda(user), is_signer=False, is_writable=True),
            AccountMeta(fee_config_pda(), is_signer=False, is_writable=False),
            AccountMeta(PUMP_FEE_PROGRAM_ID, is_signer=False, is_writable=False),
        ]
        data = anchor_discriminator("buy") + struct.pack('<QQ', amount, max_sol_cost) + bytes([1])
        return Instruction(PUMP_PROGRAM_ID, data, accounts)

    def create_and_buy_instructions(self, global_state: PumpGlobal, mint: Pubkey, name: str, symbol: str,
                                    uri: str, creator: Pubkey, user: Pubkey, sol_amount: int,
                                    slippage_bps: int = 100, amount: Optional[int] = None) -> List[Instruction]:
        if amount is None:
            amount = buy_token_amount_from_sol(global_state, sol_amount)
        max_sol_cost = sol_amount + sol_amount * slippage_bps // 10000
        return [
            self.create_instruction(mint, name, symbol, uri, creator, user),
            create_associated_token_account_idempotent(user, user, mint),
            self.buy_instruction(global_state, mint, creator, user, amount, max_sol_cost),
        ]


def create_associated_token_account_idempotent(payer: Pubkey, owner: Pubkey, mint: Pubkey,
                                               token_program: Pubkey = TOKEN_PROGRAM_ID) -> Instruction:
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(get_associated_token_address(owner, mint, token_program), is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=False),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(token_program, is_signer=False, is_writable=False),
    ]
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([1]), accounts)
