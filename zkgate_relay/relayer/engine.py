"""
Relay submission engine.

Steps run strictly in order and the first failure ends the request:
validate, check eligibility, derive the nullifier account, build the
instruction behind compute-budget directives, sign with the relay authority,
simulate, and only on a clean simulation broadcast and wait for
confirmation. ``submit`` turns every failure into a status code and payload.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ..errors import (
    ConfigurationError,
    InternalError,
    MissingParametersError,
    SimulationFailedError,
    TransactionFailedError,
    TransactionNotConfirmedError,
    ZkGateError,
)
from .constants import (
    DEFAULT_COMPUTE_UNIT_LIMIT,
    DEFAULT_COMPUTE_UNIT_PRICE,
    DEFAULT_CONFIRM_MAX_POLLS,
    DEFAULT_CONFIRM_POLL_INTERVAL,
)
from .eligibility import EligibilityVerifier
from .instruction import (
    build_instruction,
    build_transaction,
    compute_budget_instructions,
    missing_accounts,
)
from .messages import RelayerRequest, RelayerResponse
from .nullifier import build_debug_snapshot, build_nullifier_meta
from .rpc import ChainRpc

logger = logging.getLogger(__name__)


class RelaySubmissionEngine:
    def __init__(
        self,
        rpc: ChainRpc,
        program_id: Optional[str],
        relayer: Optional[Keypair],
        eligibility: Optional[EligibilityVerifier] = None,
        compute_unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT,
        compute_unit_price: int = DEFAULT_COMPUTE_UNIT_PRICE,
        confirm_max_polls: int = DEFAULT_CONFIRM_MAX_POLLS,
        confirm_poll_interval: float = DEFAULT_CONFIRM_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._rpc = rpc
        self._program_id = program_id
        self._relayer = relayer
        self._eligibility = eligibility or EligibilityVerifier()
        self._compute_unit_limit = compute_unit_limit
        self._compute_unit_price = compute_unit_price
        self._confirm_max_polls = confirm_max_polls
        self._confirm_poll_interval = confirm_poll_interval
        self._sleep = sleep

    def submit(self, body: Any) -> tuple[int, dict]:
        try:
            signature = self.relay(body)
        except ZkGateError as exc:
            if exc.status >= 500:
                logger.error("Relay failed: %s (%s)", exc.message, exc.code)
            else:
                logger.info("Relay rejected: %s (%s)", exc.message, exc.code)
            return exc.status, RelayerResponse.from_error(exc).to_json()
        except Exception as exc:
            logger.exception("Unexpected relayer error")
            error = InternalError(str(exc))
            return error.status, RelayerResponse.from_error(error).to_json()
        return 200, RelayerResponse.ok(signature).to_json()

    def relay(self, body: Any) -> str:
        """Run the full relay for one request and return the signature."""
        request = RelayerRequest.from_json(body)
        missing = missing_accounts(request.accounts)
        if missing:
            raise MissingParametersError(
                [f"accounts.{name}" for name in missing], "Missing parameters"
            )

        self._eligibility.verify(
            request.eligibility_proofs, require=request.require_eligibility
        )

        program_id = self._resolve_program_id()
        relayer = self._require_relayer()
        logger.info("Relaying transaction as %s", relayer.pubkey())

        meta = build_nullifier_meta(
            request.instruction_data, request.public_inputs, request.accounts, program_id
        )
        debug = build_debug_snapshot(
            meta, request.accounts, program_id, request.proof, request.public_inputs
        )
        instruction = build_instruction(
            request.instruction_data,
            request.accounts,
            relayer.pubkey(),
            meta.address,
            program_id,
        )
        instructions = compute_budget_instructions(
            self._compute_unit_limit, self._compute_unit_price
        )
        instructions.append(instruction)

        blockhash, last_valid_height = self._rpc.latest_blockhash()
        tx = build_transaction(instructions, relayer, blockhash)

        simulation = self._rpc.simulate(tx)
        if simulation.err is not None:
            logger.error("Relayer simulation error: %s", simulation.err)
            for line in simulation.logs:
                logger.debug("  %s", line)
            raise SimulationFailedError(simulation.err, simulation.logs, debug)

        signature = self._rpc.send(tx)
        logger.info("Broadcast %s, awaiting confirmation", signature)
        self._await_confirmation(signature, last_valid_height)
        logger.info("Transaction confirmed: %s", signature)
        return signature

    def _await_confirmation(self, signature: str, last_valid_height: int) -> None:
        for attempt in range(self._confirm_max_polls):
            state = self._rpc.signature_status(signature)
            if state is not None:
                if state.err is not None:
                    raise TransactionFailedError(
                        "Transaction failed", {"signature": signature, "error": state.err}
                    )
                if state.confirmed:
                    return
            if self._rpc.block_height() > last_valid_height:
                raise TransactionNotConfirmedError(
                    "Transaction expired before confirmation", {"signature": signature}
                )
            if attempt + 1 < self._confirm_max_polls:
                self._sleep(self._confirm_poll_interval)
        raise TransactionNotConfirmedError(
            "Transaction not confirmed", {"signature": signature}
        )

    def _resolve_program_id(self) -> Pubkey:
        if not self._program_id:
            raise ConfigurationError("Program id not configured on server")
        try:
            return Pubkey.from_string(self._program_id)
        except ValueError as exc:
            raise ConfigurationError("Invalid program id", str(exc)) from exc

    def _require_relayer(self) -> Keypair:
        if self._relayer is None:
            raise ConfigurationError("Relayer Private Key not configured on server")
        return self._relayer
