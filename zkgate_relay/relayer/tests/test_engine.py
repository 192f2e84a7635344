"""Relay submission engine tests against a recording fake RPC."""

from __future__ import annotations

import base64
import struct
from typing import Optional

from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from zkgate_relay.errors import ErrorCodes
from zkgate_relay.relayer.constants import REQUIRED_ACCOUNTS
from zkgate_relay.relayer.eligibility import EligibilityVerifier
from zkgate_relay.relayer.engine import RelaySubmissionEngine
from zkgate_relay.relayer.rpc import SignatureState, SimulationResult

PROGRAM_ID = str(Pubkey.new_unique())
LAST_VALID_HEIGHT = 100


class _FakeRpc:
    def __init__(
        self,
        simulation: Optional[SimulationResult] = None,
        statuses: Optional[list] = None,
        height: int = 0,
    ) -> None:
        self.blockhash = Hash.new_unique()
        self.simulation = simulation or SimulationResult(err=None)
        self.statuses = list(statuses) if statuses is not None else [SignatureState(True)]
        self.height = height
        self.calls: list[str] = []
        self.sent: list = []

    def latest_blockhash(self):
        self.calls.append("latest_blockhash")
        return self.blockhash, LAST_VALID_HEIGHT

    def simulate(self, tx) -> SimulationResult:
        self.calls.append("simulate")
        return self.simulation

    def send(self, tx) -> str:
        self.calls.append("send")
        self.sent.append(tx)
        return "5igSig"

    def signature_status(self, signature: str):
        self.calls.append("signature_status")
        return self.statuses.pop(0) if self.statuses else None

    def block_height(self) -> int:
        self.calls.append("block_height")
        return self.height


def _instruction_data(nullifier_hash: bytes = b"\xaa" * 32) -> str:
    proof = b"\x07" * 64
    public_inputs = b"\x01" * 64
    raw = (
        b"\x11" * 8
        + struct.pack("<I", len(proof))
        + proof
        + struct.pack("<I", len(public_inputs))
        + public_inputs
        + struct.pack("<QQ?", 1_000, 900, True)
        + nullifier_hash
    )
    return base64.b64encode(raw).decode("ascii")


def _body(**overrides) -> dict:
    body = {
        "proof": [7] * 64,
        "publicInputs": [1] * 64,
        "instructionData": _instruction_data(),
        "accounts": {name: str(Pubkey.new_unique()) for name in REQUIRED_ACCOUNTS},
    }
    body.update(overrides)
    return body


def _engine(rpc: _FakeRpc, **kwargs) -> RelaySubmissionEngine:
    options = dict(
        program_id=PROGRAM_ID,
        relayer=Keypair(),
        confirm_max_polls=3,
        confirm_poll_interval=0.25,
        sleep=lambda seconds: None,
    )
    options.update(kwargs)
    return RelaySubmissionEngine(rpc, **options)


def test_successful_relay() -> None:
    rpc = _FakeRpc()
    relayer = Keypair()
    status, payload = _engine(rpc, relayer=relayer).submit(_body())

    assert status == 200
    assert payload == {"success": True, "signature": "5igSig"}
    assert rpc.calls == ["latest_blockhash", "simulate", "send", "signature_status"]

    tx = rpc.sent[0]
    assert tx.message.account_keys[0] == relayer.pubkey()
    assert tx.message.recent_blockhash == rpc.blockhash
    # two compute-budget directives, then the swap
    assert len(tx.message.instructions) == 3


def test_simulation_failure_never_broadcasts() -> None:
    rpc = _FakeRpc(
        simulation=SimulationResult(
            err="InstructionError(2, Custom(6001))", logs=["Program log: bad proof"]
        )
    )
    status, payload = _engine(rpc).submit(_body())

    assert status == 500
    assert payload["errorCode"] == ErrorCodes.SIMULATION_FAILED
    assert payload["details"] == "InstructionError(2, Custom(6001))"
    assert payload["logs"] == ["Program log: bad proof"]
    assert payload["debug"]["nullifierHashHex"] == "aa" * 32
    assert rpc.sent == []
    assert "send" not in rpc.calls


def test_missing_accounts_rejected_before_rpc() -> None:
    body = _body()
    del body["accounts"]["reserveOut"]
    rpc = _FakeRpc()

    status, payload = _engine(rpc).submit(body)

    assert status == 400
    assert payload["errorCode"] == ErrorCodes.MISSING_PARAMS
    assert payload["error"] == "Missing parameters"
    assert "accounts.reserveOut" in payload["details"]
    assert rpc.calls == []


def test_missing_relayer_key() -> None:
    rpc = _FakeRpc()
    status, payload = _engine(rpc, relayer=None).submit(_body())

    assert status == 500
    assert payload["errorCode"] == ErrorCodes.CONFIGURATION_ERROR
    assert payload["error"] == "Relayer Private Key not configured on server"
    assert rpc.calls == []


def test_missing_program_id() -> None:
    status, payload = _engine(_FakeRpc(), program_id=None).submit(_body())
    assert status == 500
    assert payload["errorCode"] == ErrorCodes.CONFIGURATION_ERROR


def test_eligibility_failure_stops_relay() -> None:
    rpc = _FakeRpc()
    engine = _engine(rpc, eligibility=EligibilityVerifier(lambda *args: False))
    body = _body(eligibilityProofs=[{"type": "min_balance", "proof": [1], "publicInputs": [2]}])

    status, payload = engine.submit(body)

    assert status == 400
    assert payload["errorCode"] == ErrorCodes.ELIGIBILITY_VERIFICATION_FAILED
    assert rpc.calls == []


def test_required_eligibility_without_proofs() -> None:
    rpc = _FakeRpc()
    status, payload = _engine(rpc).submit(_body(requireEligibility=True))
    assert status == 400
    assert payload["error"] == "Eligibility proofs required"


def test_undecodable_nullifier_is_client_error() -> None:
    rpc = _FakeRpc()
    body = _body(instructionData=base64.b64encode(b"\x00" * 6).decode(), publicInputs=[1])
    status, payload = _engine(rpc).submit(body)
    assert status == 400
    assert payload["errorCode"] == ErrorCodes.INVALID_REQUEST
    assert rpc.calls == []


def test_confirmation_polls_are_bounded() -> None:
    sleeps: list[float] = []
    rpc = _FakeRpc(statuses=[None, None, None, None])
    status, payload = _engine(rpc, sleep=sleeps.append).submit(_body())

    assert status == 500
    assert payload["errorCode"] == ErrorCodes.TRANSACTION_NOT_CONFIRMED
    assert payload["details"] == {"signature": "5igSig"}
    assert rpc.calls.count("signature_status") == 3
    assert sleeps == [0.25, 0.25]


def test_confirmation_waits_for_pending_status() -> None:
    rpc = _FakeRpc(statuses=[None, SignatureState(False), SignatureState(True)])
    status, _ = _engine(rpc).submit(_body())
    assert status == 200
    assert rpc.calls.count("signature_status") == 3


def test_expired_blockhash_stops_polling() -> None:
    rpc = _FakeRpc(statuses=[None], height=LAST_VALID_HEIGHT + 1)
    status, payload = _engine(rpc).submit(_body())

    assert status == 500
    assert payload["errorCode"] == ErrorCodes.TRANSACTION_NOT_CONFIRMED
    assert payload["error"] == "Transaction expired before confirmation"
    assert rpc.calls.count("signature_status") == 1


def test_failed_transaction_status() -> None:
    rpc = _FakeRpc(statuses=[SignatureState(False, err="InstructionError(2, Custom(1))")])
    status, payload = _engine(rpc).submit(_body())
    assert status == 500
    assert payload["errorCode"] == ErrorCodes.TRANSACTION_FAILED
    assert payload["details"]["error"] == "InstructionError(2, Custom(1))"


class _BrokenRpc(_FakeRpc):
    def latest_blockhash(self):
        raise RuntimeError("connection reset")


def test_unexpected_errors_become_internal_errors() -> None:
    status, payload = _engine(_BrokenRpc()).submit(_body())
    assert status == 500
    assert payload["errorCode"] == ErrorCodes.INTERNAL_ERROR
    assert payload["details"] == "connection reset"
