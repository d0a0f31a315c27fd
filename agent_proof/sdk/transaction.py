"""Transaction submission for agent-proof.

Builds a v0 transaction, simulates it to size the compute budget, then signs,
sends and waits for confirmation. Nothing here retries: a failure surfaces as
NetworkError and the caller may re-run the step.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import RPCException, TransactionExpiredBlockheightExceededError, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.compute_budget import set_compute_unit_limit
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from agent_proof.sdk.errors import NetworkError
from agent_proof.sdk.models import SubmissionResult

logger = logging.getLogger(__name__)

DEFAULT_COMPUTE_UNITS = 200_000
COMPUTE_UNIT_BUFFER = 1.1

RPC_ERRORS = (
    RPCException,
    SolanaRpcException,
    UnconfirmedTxError,
    TransactionExpiredBlockheightExceededError,
)


class TransactionSubmitter:
    """Signs with a single fee payer and submits instruction lists."""

    def __init__(self, client: Client, payer: Keypair, commitment: Commitment = Confirmed):
        if client is None:
            raise ValueError("RPC client is required")
        self.client = client
        self.payer = payer
        self.commitment = commitment

    def _sign(self, instructions: Sequence[Instruction], blockhash: Hash) -> VersionedTransaction:
        message = MessageV0.try_compile(self.payer.pubkey(), list(instructions), [], blockhash)
        return VersionedTransaction(message, [self.payer])

    def estimate_compute_units(self, instructions: Sequence[Instruction], blockhash: Hash) -> int:
        """Simulate the instructions and return the compute units they consume."""
        simulation = self.client.simulate_transaction(
            self._sign(instructions, blockhash), sig_verify=False, commitment=self.commitment
        ).value
        if simulation.err is not None:
            logs = list(simulation.logs or [])
            for line in logs:
                logger.debug("simulation: %s", line)
            raise NetworkError(f"Transaction simulation failed: {simulation.err}", logs=logs)
        return simulation.units_consumed or DEFAULT_COMPUTE_UNITS

    def submit(self, instructions: Sequence[Instruction], description: str = "") -> SubmissionResult:
        """Submit ``instructions`` and return once the transaction is confirmed."""
        if not instructions:
            raise ValueError("At least one instruction is required")

        try:
            latest = self.client.get_latest_blockhash(commitment=self.commitment).value
            cu_used = self.estimate_compute_units(instructions, latest.blockhash)
            cu_limit = math.ceil(cu_used * COMPUTE_UNIT_BUFFER)
            logger.debug("%s: %d CU simulated, limit %d", description or "transaction", cu_used, cu_limit)

            tx = self._sign([set_compute_unit_limit(cu_limit), *instructions], latest.blockhash)
            signature = self.client.send_transaction(
                tx, opts=TxOpts(skip_confirmation=True, preflight_commitment=self.commitment)
            ).value
            statuses = self.client.confirm_transaction(
                signature,
                commitment=self.commitment,
                last_valid_block_height=latest.last_valid_block_height,
            ).value
        except RPC_ERRORS as e:
            raise NetworkError(f"{description or 'Transaction'} failed: {e}") from e

        status = statuses[0] if statuses else None
        if status is not None and status.err is not None:
            raise NetworkError(f"Transaction {signature} failed: {status.err}")

        logger.info("%s confirmed: %s", description or "transaction", signature)
        return SubmissionResult(signature=str(signature), cu_used=cu_used, cu_limit=cu_limit)
