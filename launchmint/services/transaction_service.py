"""
Transaction signing, submission and confirmation
"""

import time
import asyncio
import logging
from typing import Optional, Sequence, List

import aiohttp
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from launchmint.errors import SubmissionError, ConfirmationTimeoutError, RpcError
from launchmint.models import Deadline
from launchmint.services.solana_rpc import SolanaRPC

COMMITMENT_RANK = {'processed': 0, 'confirmed': 1, 'finalized': 2}

# RPC error fragments worth another send attempt
TRANSIENT_SEND_ERRORS = ('blockhash not found', 'node is behind', 'too many requests', 'timed out')


def sign_transaction(tx: VersionedTransaction, signers: Sequence[Keypair]) -> VersionedTransaction:
    """Add signatures to a (possibly partially signed) transaction

    Signatures already present are kept. Every signer must be one of the
    message's required signers.
    """
    message = tx.message
    required = list(message.account_keys[:message.header.num_required_signatures])
    signatures = list(tx.signatures)
    if len(signatures) < len(required):
        signatures += [Signature.default()] * (len(required) - len(signatures))

    payload = to_bytes_versioned(message)
    for signer in signers:
        pubkey = signer.pubkey()
        if pubkey not in required:
            raise SubmissionError(f"{pubkey} is not a required signer for this transaction")
        signatures[required.index(pubkey)] = signer.sign_message(payload)

    return VersionedTransaction.populate(message, signatures)


def build_transaction(instructions: List[Instruction], payer: Pubkey, blockhash: Hash,
                      signers: Sequence[Keypair], legacy: bool = True) -> VersionedTransaction:
    """Assemble instructions into a signed transaction on a recent blockhash"""
    if legacy:
        message = Message.new_with_blockhash(instructions, payer, blockhash)
    else:
        message = MessageV0.try_compile(payer, instructions, [], blockhash)
    return VersionedTransaction(message, list(signers))


class TransactionSubmitter:
    """Send with bounded retry, then poll until the target commitment"""

    def __init__(self, rpc: SolanaRPC, commitment: str = 'confirmed', max_retries: int = 3,
                 retry_delay: float = 1.0, confirm_timeout: float = 90.0, poll_interval: float = 2.0):
        self.rpc = rpc
        self.commitment = commitment
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self.logger = logging.getLogger('launchmint.submitter')

    async def send(self, tx: VersionedTransaction, skip_preflight: bool = False) -> str:
        tx_bytes = bytes(tx)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.rpc.send_raw_transaction(tx_bytes, skip_preflight=skip_preflight,
                                                           max_retries=self.max_retries)
            except RpcError as e:
                transient = any(fragment in e.message.lower() for fragment in TRANSIENT_SEND_ERRORS)
                if not transient or attempt >= self.max_retries:
                    raise SubmissionError(f"Transaction rejected: {e.message}")
                self.logger.warning(f"Send failed ({e.message}), retrying ({attempt}/{self.max_retries})...")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt >= self.max_retries:
                    raise SubmissionError(f"Transaction could not be sent: {e}")
                self.logger.warning(f"Send error ({e}), retrying ({attempt}/{self.max_retries})...")
            await asyncio.sleep(self.retry_delay)

    async def confirm(self, signature: str, last_valid_block_height: Optional[int] = None,
                      deadline: Optional[Deadline] = None) -> None:
        """Poll the signature status until the target commitment is reached

        Raises ConfirmationTimeoutError when the blockhash expires, the timeout
        elapses or the caller's deadline runs out. Never resubmits.
        """
        target = COMMITMENT_RANK[self.commitment]
        started = time.monotonic()

        while True:
            try:
                statuses = await self.rpc.get_signature_statuses([signature])
            except (RpcError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.logger.warning(f"Status poll for {signature} failed ({e!r}), still waiting...")
                statuses = None
            status = statuses[0] if statuses else None
            if status:
                if status.get("err"):
                    raise SubmissionError(f"Transaction {signature} failed: {status['err']}")
                level = status.get("confirmationStatus")
                if level and COMMITMENT_RANK.get(level, -1) >= target:
                    return

            if last_valid_block_height is not None:
                try:
                    height = await self.rpc.get_block_height()
                except (RpcError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                    self.logger.warning(f"Block height poll failed ({e!r})")
                    height = None
                if height is not None and height > last_valid_block_height:
                    raise ConfirmationTimeoutError(
                        f"Blockhash expired before {signature} confirmed; retry the launch",
                        signature=signature,
                    )

            if time.monotonic() - started > self.confirm_timeout:
                raise ConfirmationTimeoutError(
                    f"Transaction {signature} not confirmed within {self.confirm_timeout:.0f}s",
                    signature=signature,
                )
            if deadline is not None and deadline.expired:
                raise ConfirmationTimeoutError(
                    f"Deadline reached while waiting for {signature}",
                    signature=signature,
                )

            await asyncio.sleep(self.poll_interval)

    async def submit(self, tx: VersionedTransaction, last_valid_block_height: Optional[int] = None,
                     deadline: Optional[Deadline] = None, skip_preflight: bool = False) -> str:
        signature = await self.send(tx, skip_preflight=skip_preflight)
        self.logger.info(f"Transaction sent: {signature}")
        await self.confirm(signature, last_valid_block_height, deadline)
        self.logger.info(f"Transaction confirmed: {signature}")
        return signature

    async def submit_serialized(self, tx_bytes: bytes, signers: Sequence[Keypair],
                                deadline: Optional[Deadline] = None, skip_preflight: bool = False) -> str:
        """Sign and submit a transaction assembled by a remote service"""
        try:
            tx = VersionedTransaction.from_bytes(tx_bytes)
        except ValueError as e:
            raise SubmissionError(f"Could not decode transaction: {e}")
        signed = sign_transaction(tx, signers)
        return await self.submit(signed, deadline=deadline, skip_preflight=skip_preflight)
