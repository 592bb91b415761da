"""RLN session: one identity bound to one application and circuit.

A session is plain configuration. It owns no backend and no mutable
state; hashing, proving and verification are passed in per call, so the
same session can be used from any number of tasks.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import structlog

from rln_protocol.api.models import ExportedIdentity, ExportedSession
from rln_protocol.core.identity import Identity
from rln_protocol.core.nullifiers import current_epoch
from rln_protocol.core.proof import CircuitArtifacts, FullProof, ProofService
from rln_protocol.core.registry import MerkleProof
from rln_protocol.core.witness import RLNWitness, WitnessBuilder
from rln_protocol.utils import field as fq
from rln_protocol.utils.hashing import FieldHasher

log = structlog.get_logger()


@dataclass(frozen=True)
class RlnSession:
    app_id: int
    verification_key: dict[str, Any]
    artifacts: CircuitArtifacts
    identity: Identity

    @classmethod
    def create(
        cls,
        artifacts: CircuitArtifacts,
        verification_key: dict[str, Any],
        hasher: FieldHasher,
        app_id: int | None = None,
        identity: Identity | None = None,
    ) -> RlnSession:
        """Create a session, generating the app id and identity when omitted."""
        session = cls(
            app_id=fq.random_element() if app_id is None else fq.to_field(app_id),
            verification_key=verification_key,
            artifacts=artifacts,
            identity=identity if identity is not None else Identity.generate(hasher),
        )
        log.info("rln_identity_ready", commitment=f"{session.identity.commitment:x}"[:16])
        return session

    def build_witness(
        self,
        hasher: FieldHasher,
        membership_proof: MerkleProof,
        signal: str | int,
        epoch: int,
        zero_value: int = 0,
        signal_already_hashed: bool = False,
    ) -> RLNWitness:
        return WitnessBuilder(hasher, zero_value).build(
            self.identity,
            membership_proof,
            epoch,
            signal,
            self.app_id,
            signal_already_hashed=signal_already_hashed,
        )

    async def generate_proof(
        self,
        service: ProofService,
        hasher: FieldHasher,
        membership_proof: MerkleProof,
        signal: str,
        epoch: int | None = None,
    ) -> FullProof:
        """Prove ``signal`` for ``epoch`` (current unix second when omitted)."""
        epoch = current_epoch() if epoch is None else epoch
        witness = self.build_witness(hasher, membership_proof, signal, epoch)
        return await service.generate_proof(witness, epoch, self.app_id, self.artifacts)

    async def verify_proof(
        self,
        service: ProofService,
        full_proof: FullProof,
        local_epoch: int | None = None,
    ) -> bool:
        return await service.verify_proof(full_proof, self.app_id, self.verification_key, local_epoch)

    def export(self) -> dict[str, Any]:
        """Serialize to the portable session format.

        Only the identity seeds are written; derived values are recomputed
        on import.
        """
        log.debug("rln_session_export")
        return ExportedSession(
            identity=ExportedIdentity(**self.identity.to_dict()),
            rlnIdentifier=str(self.app_id),
            verificationKey=json.dumps(self.verification_key),
            wasmFilePath=self.artifacts.wasm_file_path,
            finalZkeyPath=self.artifacts.final_zkey_path,
        ).model_dump()

    @classmethod
    def from_export(cls, data: dict[str, Any], hasher: FieldHasher) -> RlnSession:
        log.debug("rln_session_import")
        exported = ExportedSession.model_validate(data)
        return cls(
            app_id=int(exported.rlnIdentifier),
            verification_key=json.loads(exported.verificationKey),
            artifacts=CircuitArtifacts(
                wasm_file_path=exported.wasmFilePath,
                final_zkey_path=exported.finalZkeyPath,
            ),
            identity=Identity.from_dict(exported.identity.model_dump(), hasher),
        )
