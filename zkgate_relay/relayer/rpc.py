"""Chain RPC port and its solana-py implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

logger = logging.getLogger(__name__)

_CONFIRMED = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)


@dataclass(frozen=True)
class SimulationResult:
    err: Optional[str]
    logs: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SignatureState:
    confirmed: bool
    err: Optional[str] = None


class ChainRpc(Protocol):
    def latest_blockhash(self) -> tuple[Hash, int]:
        ...

    def simulate(self, tx: Transaction) -> SimulationResult:
        ...

    def send(self, tx: Transaction) -> str:
        ...

    def signature_status(self, signature: str) -> Optional[SignatureState]:
        ...

    def block_height(self) -> int:
        ...


class SolanaRpc:
    def __init__(
        self, endpoint: str, commitment: str = "confirmed", timeout: float = 30
    ) -> None:
        self._commitment = Commitment(commitment)
        self._client = Client(endpoint, commitment=self._commitment, timeout=timeout)

    def latest_blockhash(self) -> tuple[Hash, int]:
        value = self._client.get_latest_blockhash().value
        return value.blockhash, value.last_valid_block_height

    def simulate(self, tx: Transaction) -> SimulationResult:
        value = self._client.simulate_transaction(tx).value
        err = None if value.err is None else str(value.err)
        return SimulationResult(err=err, logs=list(value.logs or []))

    def send(self, tx: Transaction) -> str:
        resp = self._client.send_raw_transaction(
            bytes(tx),
            opts=TxOpts(skip_preflight=False, preflight_commitment=self._commitment),
        )
        return str(resp.value)

    def signature_status(self, signature: str) -> Optional[SignatureState]:
        statuses = self._client.get_signature_statuses(
            [Signature.from_string(signature)]
        ).value
        status = statuses[0] if statuses else None
        if status is None:
            return None
        return SignatureState(
            confirmed=status.confirmation_status in _CONFIRMED,
            err=None if status.err is None else str(status.err),
        )

    def block_height(self) -> int:
        return self._client.get_block_height().value
