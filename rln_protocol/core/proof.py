"""Proof generation and binding checks around an external zkSNARK backend.

The cryptographic work happens in a Prover/Verifier collaborator (snarkjs,
a native prover, a remote service). This module only does what is cheap:

1. wrap prover output with the epoch and RLN identifier it was made for;
2. before verification, check that the proof is bound to *this*
   application and that its external nullifier matches the epoch it
   claims, so obviously foreign proofs never reach the pairing check.

Public signals are keyed internally but cross the verifier boundary as a
positional list in circuit order:
    [y_share, merkle_root, internal_nullifier, signal_hash, external_nullifier]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import structlog

from rln_protocol.core.errors import BackendError, IdentifierMismatch, NullifierMismatch
from rln_protocol.core.nullifiers import compute_external_nullifier
from rln_protocol.core.witness import RLNWitness
from rln_protocol.utils.field import to_field
from rln_protocol.utils.hashing import FieldHasher

log = structlog.get_logger()

PUBLIC_SIGNAL_ORDER = (
    "y_share",
    "merkle_root",
    "internal_nullifier",
    "signal_hash",
    "external_nullifier",
)


def _short(value: int) -> str:
    return f"{value:x}"[:16]


@dataclass(frozen=True)
class CircuitArtifacts:
    """Opaque references to circuit files, forwarded to the prover unexamined."""

    wasm_file_path: str
    final_zkey_path: str


@dataclass(frozen=True)
class PublicSignals:
    y_share: int
    merkle_root: int
    internal_nullifier: int
    signal_hash: int
    external_nullifier: int

    def as_list(self) -> list[int]:
        """Positional order expected by the circuit's verification key."""
        return [getattr(self, name) for name in PUBLIC_SIGNAL_ORDER]

    @classmethod
    def from_list(cls, values: Sequence[int | str]) -> PublicSignals:
        if len(values) != len(PUBLIC_SIGNAL_ORDER):
            raise ValueError(
                f"expected {len(PUBLIC_SIGNAL_ORDER)} public signals, got {len(values)}"
            )
        return cls(**{name: to_field(v) for name, v in zip(PUBLIC_SIGNAL_ORDER, values)})


@dataclass(frozen=True)
class SNARKProof:
    proof: dict[str, Any]
    public_signals: PublicSignals


@dataclass(frozen=True)
class FullProof:
    """A SNARK proof plus the (epoch, rln_identifier) it claims to be bound to."""

    snark_proof: SNARKProof
    epoch: int
    rln_identifier: int


class Prover(Protocol):
    async def prove(self, witness: dict[str, object], artifacts: CircuitArtifacts) -> SNARKProof: ...


class Verifier(Protocol):
    async def verify(
        self,
        verification_key: dict[str, Any],
        public_signals: list[int],
        proof: dict[str, Any],
    ) -> bool: ...


class ProofService:
    """Generates RLN proofs and verifies them against a local app binding.

    Holds no per-call state; concurrent ``generate_proof``/``verify_proof``
    calls for different witnesses do not interfere. No retries and no
    timeouts are applied here, callers impose their own.
    """

    def __init__(self, prover: Prover, verifier: Verifier, hasher: FieldHasher) -> None:
        self._prover = prover
        self._verifier = verifier
        self._hasher = hasher

    async def generate_proof(
        self,
        witness: RLNWitness,
        epoch: int,
        app_id: int,
        artifacts: CircuitArtifacts,
    ) -> FullProof:
        try:
            snark_proof = await self._prover.prove(witness.to_circuit_input(), artifacts)
        except BackendError:
            raise
        except Exception as e:
            log.error("prover_failed", error=str(e))
            raise BackendError(str(e)) from e

        log.info(
            "proof_generated",
            epoch=epoch,
            app_id=_short(app_id),
            internal_nullifier=_short(snark_proof.public_signals.internal_nullifier),
        )
        return FullProof(snark_proof=snark_proof, epoch=epoch, rln_identifier=app_id)

    def check_binding(self, full_proof: FullProof, local_app_id: int, local_epoch: int | None = None) -> None:
        """Cheap pre-verification checks.

        Raises:
            IdentifierMismatch: Proof was made for another application.
            NullifierMismatch: Embedded external nullifier does not match the
                one recomputed from the epoch and the local app id.
        """
        if to_field(full_proof.rln_identifier) != to_field(local_app_id):
            log.warning(
                "proof_identifier_mismatch",
                expected=_short(local_app_id),
                got=_short(full_proof.rln_identifier),
            )
            raise IdentifierMismatch("RLN identifier does not match")

        epoch = full_proof.epoch if local_epoch is None else local_epoch
        expected = compute_external_nullifier(epoch, local_app_id, self._hasher)
        if expected != to_field(full_proof.snark_proof.public_signals.external_nullifier):
            log.warning("proof_external_nullifier_mismatch", epoch=epoch)
            raise NullifierMismatch("External nullifier does not match")

    async def verify_proof(
        self,
        full_proof: FullProof,
        local_app_id: int,
        verification_key: dict[str, Any],
        local_epoch: int | None = None,
    ) -> bool:
        """Check the app/epoch binding, then run the cryptographic verifier.

        Args:
            full_proof: Proof to check.
            local_app_id: RLN identifier of the verifying application.
            verification_key: Circuit verification key, passed through.
            local_epoch: If set, the epoch the verifier expects instead of the
                one the proof claims.

        Returns:
            The verifier's result, unchanged.
        """
        self.check_binding(full_proof, local_app_id, local_epoch)
        snark = full_proof.snark_proof
        try:
            valid = await self._verifier.verify(verification_key, snark.public_signals.as_list(), snark.proof)
        except BackendError:
            raise
        except Exception as e:
            log.error("verifier_failed", error=str(e))
            raise BackendError(str(e)) from e
        log.debug("proof_verified", valid=valid, epoch=full_proof.epoch)
        return valid
