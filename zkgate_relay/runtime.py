"""Wiring of settings into the proof service and relay engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from solders.keypair import Keypair

from .config import Settings
from .errors import ConfigurationError
from .proving.fixture import FixtureToolchain
from .proving.pipeline import ProofPipeline
from .proving.service import ProofService
from .proving.toolchain import SubprocessToolchain, Toolchain
from .relayer.eligibility import EligibilityVerifier
from .relayer.engine import RelaySubmissionEngine
from .relayer.rpc import ChainRpc, SolanaRpc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    settings: Settings
    proofs: ProofService
    relay: RelaySubmissionEngine


def make_toolchain(settings: Settings) -> Toolchain:
    if settings.toolchain == "fixture":
        logger.warning("Using fixture toolchain: proofs are NOT cryptographically sound")
        return FixtureToolchain()
    return SubprocessToolchain(
        nargo_bin=settings.nargo_bin,
        sunspot_bin=settings.sunspot_bin,
        timeout=settings.tool_timeout,
    )


def load_relayer_keypair(settings: Settings) -> Optional[Keypair]:
    if settings.relayer_secret is None:
        return None
    try:
        return Keypair.from_bytes(settings.relayer_secret)
    except ValueError as exc:
        raise ConfigurationError("Invalid RELAYER_PRIVATE_KEY", str(exc)) from exc


def build_services(
    settings: Settings,
    toolchain: Optional[Toolchain] = None,
    rpc: Optional[ChainRpc] = None,
) -> Services:
    pipeline = ProofPipeline(
        toolchain or make_toolchain(settings),
        circuit_root=settings.circuit_root,
        keys_dir=settings.keys_dir,
        auto_compile=settings.auto_compile,
    )
    proofs = ProofService(pipeline)

    eligibility = EligibilityVerifier(
        pipeline.verify if settings.verify_eligibility_proofs else None
    )
    relay = RelaySubmissionEngine(
        rpc or SolanaRpc(settings.rpc_url, settings.commitment, settings.rpc_timeout),
        program_id=settings.program_id,
        relayer=load_relayer_keypair(settings),
        eligibility=eligibility,
        compute_unit_limit=settings.compute_unit_limit,
        compute_unit_price=settings.compute_unit_price,
        confirm_max_polls=settings.confirm_max_polls,
        confirm_poll_interval=settings.confirm_poll_interval,
    )
    return Services(settings=settings, proofs=proofs, relay=relay)
