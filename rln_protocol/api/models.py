"""Pydantic wire models for sessions and proofs.

Every field element crosses this boundary as a decimal string; JSON numbers
lose precision far below the 254-bit field size.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from rln_protocol.core.proof import FullProof, PublicSignals, SNARKProof
from rln_protocol.utils.field import BN254_PRIME

_DECIMAL_RE = re.compile(r"^[0-9]{1,78}$")


def _validate_scalar(v: str, field_name: str) -> str:
    if not _DECIMAL_RE.match(v):
        raise ValueError(f"{field_name} must be a decimal string")
    if int(v) >= BN254_PRIME:
        raise ValueError(f"{field_name} must be a field element (< p)")
    return v


class ExportedIdentity(BaseModel):
    nullifier: str
    trapdoor: str

    @field_validator("nullifier", "trapdoor")
    @classmethod
    def validate_seed(cls, v: str, info: ValidationInfo) -> str:
        return _validate_scalar(v, info.field_name)


class ExportedSession(BaseModel):
    """Serialized ``RlnSession``: seeds, identifier, key and artifact paths."""

    identity: ExportedIdentity
    rlnIdentifier: str
    verificationKey: str
    wasmFilePath: str = Field(max_length=4096)
    finalZkeyPath: str = Field(max_length=4096)

    @field_validator("rlnIdentifier")
    @classmethod
    def validate_rln_identifier(cls, v: str) -> str:
        return _validate_scalar(v, "rlnIdentifier")

    @field_validator("verificationKey")
    @classmethod
    def validate_verification_key(cls, v: str) -> str:
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"verificationKey must be JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError("verificationKey must be a JSON object")
        return v


class PublicSignalsModel(BaseModel):
    yShare: str
    merkleRoot: str
    internalNullifier: str
    signalHash: str
    externalNullifier: str

    @field_validator("yShare", "merkleRoot", "internalNullifier", "signalHash", "externalNullifier")
    @classmethod
    def validate_signal(cls, v: str, info: ValidationInfo) -> str:
        return _validate_scalar(v, info.field_name)


class SNARKProofModel(BaseModel):
    proof: dict[str, Any]
    publicSignals: PublicSignalsModel


class FullProofModel(BaseModel):
    snarkProof: SNARKProofModel
    epoch: str
    rlnIdentifier: str

    @field_validator("epoch", "rlnIdentifier")
    @classmethod
    def validate_binding(cls, v: str, info: ValidationInfo) -> str:
        return _validate_scalar(v, info.field_name)

    @classmethod
    def from_full_proof(cls, full_proof: FullProof) -> FullProofModel:
        s = full_proof.snark_proof.public_signals
        return cls(
            snarkProof=SNARKProofModel(
                proof=full_proof.snark_proof.proof,
                publicSignals=PublicSignalsModel(
                    yShare=str(s.y_share),
                    merkleRoot=str(s.merkle_root),
                    internalNullifier=str(s.internal_nullifier),
                    signalHash=str(s.signal_hash),
                    externalNullifier=str(s.external_nullifier),
                ),
            ),
            epoch=str(full_proof.epoch),
            rlnIdentifier=str(full_proof.rln_identifier),
        )

    def to_full_proof(self) -> FullProof:
        s = self.snarkProof.publicSignals
        return FullProof(
            snark_proof=SNARKProof(
                proof=self.snarkProof.proof,
                public_signals=PublicSignals(
                    y_share=int(s.yShare),
                    merkle_root=int(s.merkleRoot),
                    internal_nullifier=int(s.internalNullifier),
                    signal_hash=int(s.signalHash),
                    external_nullifier=int(s.externalNullifier),
                ),
            ),
            epoch=int(self.epoch),
            rln_identifier=int(self.rlnIdentifier),
        )
