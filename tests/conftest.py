"""Shared test fixtures for the RLN test suite."""

from __future__ import annotations

import os

# Tests must not pick up circuit paths or a fixed identifier from a local .env.
os.environ["RLN_IDENTIFIER"] = ""
os.environ["RLN_LOG_FORMAT"] = "console"

import pytest

from rln_protocol.core.identity import Identity
from rln_protocol.core.proof import FullProof, PublicSignals, SNARKProof
from rln_protocol.core.shares import calculate_output
from rln_protocol.core.nullifiers import compute_external_nullifier
from rln_protocol.utils.field import BN254_PRIME
from rln_protocol.utils.hashing import KeccakFieldHasher, hash_signal

MOCK_GROTH16_PROOF: dict = {
    "pi_a": ["1", "2", "1"],
    "pi_b": [["1", "2"], ["3", "4"], ["1", "0"]],
    "pi_c": ["5", "6", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}

MOCK_VERIFICATION_KEY: dict = {
    "protocol": "groth16",
    "curve": "bn128",
    "nPublic": 5,
    "vk_alpha_1": ["1", "2", "1"],
    "IC": [["1", "2", "1"]] * 6,
}

APP_ID = 1234567890
EPOCH = 1_700_000_000
MERKLE_ROOT = 42


class FakeProver:
    """Computes the public signals an RLN circuit would output for a witness."""

    def __init__(self, hasher: KeccakFieldHasher, app_id: int, merkle_root: int = MERKLE_ROOT) -> None:
        self.hasher = hasher
        self.app_id = app_id
        self.merkle_root = merkle_root
        self.calls = 0

    async def prove(self, witness: dict, artifacts: object) -> SNARKProof:
        self.calls += 1
        secret = int(witness["identitySecret"])
        x = int(witness["x"])
        ext = int(witness["externalNullifier"])
        a1 = self.hasher([secret, ext])
        y = (a1 * x + secret) % BN254_PRIME
        return SNARKProof(
            proof=dict(MOCK_GROTH16_PROOF),
            public_signals=PublicSignals(
                y_share=y,
                merkle_root=self.merkle_root,
                internal_nullifier=self.hasher([a1, self.app_id]),
                signal_hash=x,
                external_nullifier=ext,
            ),
        )


@pytest.fixture
def hasher() -> KeccakFieldHasher:
    return KeccakFieldHasher()


@pytest.fixture
def identity(hasher: KeccakFieldHasher) -> Identity:
    return Identity.from_seeds(111111, 222222, hasher)


@pytest.fixture
def make_proof(hasher: KeccakFieldHasher):
    """Build a FullProof directly from the share equations, without a prover."""

    def _make(
        identity: Identity,
        signal: str,
        epoch: int = EPOCH,
        app_id: int = APP_ID,
    ) -> FullProof:
        x = hash_signal(signal)
        y, internal = calculate_output(identity.secret_identity, epoch, app_id, x, hasher)
        return FullProof(
            snark_proof=SNARKProof(
                proof=dict(MOCK_GROTH16_PROOF),
                public_signals=PublicSignals(
                    y_share=y,
                    merkle_root=MERKLE_ROOT,
                    internal_nullifier=internal,
                    signal_hash=x,
                    external_nullifier=compute_external_nullifier(epoch, app_id, hasher),
                ),
            ),
            epoch=epoch,
            rln_identifier=app_id,
        )

    return _make
