"""
Minimal async Solana JSON-RPC client
"""

import base64
import logging
from typing import Optional, List, Dict, Any, Tuple

import aiohttp
from solders.hash import Hash
from solders.pubkey import Pubkey

from launchmint.errors import RpcError

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")


def get_associated_token_address(owner: Pubkey, mint: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID) -> Pubkey:
    seeds = [bytes(owner), bytes(token_program), bytes(mint)]
    ata, _ = Pubkey.find_program_address(seeds, ASSOCIATED_TOKEN_PROGRAM_ID)
    return ata


class SolanaRPC:
    """JSON-RPC calls used by the launch pipeline

    The session is shared and owned by the caller.
    """

    def __init__(self, session: aiohttp.ClientSession, rpc_url: str, commitment: str = 'confirmed'):
        self.session = session
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.logger = logging.getLogger('launchmint.rpc')
        self._request_id = 0

    async def call(self, method: str, params: Optional[list] = None) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params or []}
        async with self.session.post(self.rpc_url, json=payload) as resp:
            result = await resp.json(content_type=None)

        if "error" in result:
            error = result["error"]
            raise RpcError(error.get("code", 0), error.get("message", "unknown error"), error.get("data"))
        return result.get("result")

    async def get_latest_blockhash(self, commitment: Optional[str] = None) -> Tuple[Hash, int]:
        result = await self.call("getLatestBlockhash", [{"commitment": commitment or self.commitment}])
        value = result["value"]
        return Hash.from_string(value["blockhash"]), int(value["lastValidBlockHeight"])

    async def get_block_height(self) -> int:
        return int(await self.call("getBlockHeight", [{"commitment": self.commitment}]))

    async def get_account_info(self, pubkey: Pubkey) -> Optional[bytes]:
        """Raw account data, or None if the account does not exist"""
        result = await self.call("getAccountInfo", [str(pubkey), {"encoding": "base64", "commitment": self.commitment}])
        value = result.get("value") if result else None
        if not value:
            return None
        return base64.b64decode(value["data"][0])

    async def get_token_balance(self, owner: Pubkey, mint: Pubkey, decimals: int = 6) -> float:
        """Balance of the owner's associated token account; 0 when it does not exist"""
        ata = get_associated_token_address(owner, mint)
        try:
            result = await self.call("getTokenAccountBalance", [str(ata), {"commitment": self.commitment}])
        except RpcError as e:
            self.logger.debug(f"No token account {ata} for mint {mint}: {e.message}")
            return 0.0
        return int(result["value"]["amount"]) / (10 ** decimals)

    async def send_raw_transaction(self, tx_bytes: bytes, skip_preflight: bool = False,
                                   max_retries: Optional[int] = None) -> str:
        opts: Dict[str, Any] = {
            "encoding": "base64",
            "skipPreflight": skip_preflight,
            "preflightCommitment": self.commitment,
        }
        if max_retries is not None:
            opts["maxRetries"] = max_retries
        encoded = base64.b64encode(tx_bytes).decode()
        return await self.call("sendTransaction", [encoded, opts])

    async def get_signature_statuses(self, signatures: List[str]) -> List[Optional[Dict[str, Any]]]:
        result = await self.call("getSignatureStatuses", [signatures, {"searchTransactionHistory": False}])
        return result["value"]
