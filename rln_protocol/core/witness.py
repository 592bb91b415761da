"""Witness assembly for the RLN circuit."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from rln_protocol.core.errors import ZeroLeaf
from rln_protocol.core.identity import Identity
from rln_protocol.core.nullifiers import compute_external_nullifier
from rln_protocol.core.registry import MerkleProof
from rln_protocol.utils.field import to_field
from rln_protocol.utils.hashing import FieldHasher, hash_signal

log = structlog.get_logger()


@dataclass(frozen=True)
class RLNWitness:
    """Private and public circuit inputs for a single message."""

    identity_secret: int
    path_elements: tuple[int, ...]
    identity_path_index: tuple[int, ...]
    x: int
    external_nullifier: int

    def to_circuit_input(self) -> dict[str, object]:
        """Circuit input signals, scalars as decimal strings."""
        return {
            "identitySecret": str(self.identity_secret),
            "pathElements": [str(e) for e in self.path_elements],
            "identityPathIndex": [int(i) for i in self.identity_path_index],
            "x": str(self.x),
            "externalNullifier": str(self.external_nullifier),
        }


class WitnessBuilder:
    """Builds ``RLNWitness`` values from an identity and a registry proof.

    Stateless apart from the hasher and the registry's zero value, so one
    builder can serve any number of identities and epochs.
    """

    def __init__(self, hasher: FieldHasher, zero_value: int = 0) -> None:
        self._hasher = hasher
        self._zero_value = to_field(zero_value)

    def build(
        self,
        identity: Identity,
        membership_proof: MerkleProof,
        epoch: int,
        signal: str | int,
        app_id: int,
        signal_already_hashed: bool = False,
    ) -> RLNWitness:
        """Assemble the witness for ``signal`` in ``epoch``.

        Args:
            identity: The sender's identity.
            membership_proof: Registry proof for the sender's commitment.
            epoch: Epoch the signal is broadcast in.
            signal: Raw message, or its field hash if ``signal_already_hashed``.
            app_id: RLN identifier of the application.
            signal_already_hashed: Treat ``signal`` as a precomputed x.

        Raises:
            ZeroLeaf: If the membership proof is for the registry's empty leaf.
        """
        if to_field(membership_proof.leaf) == self._zero_value:
            log.warning("witness_rejected_zero_leaf")
            raise ZeroLeaf("Can't build a witness for a zero leaf")

        if signal_already_hashed:
            x = to_field(signal)
        else:
            if not isinstance(signal, str):
                raise TypeError("signal must be a string unless signal_already_hashed is set")
            x = hash_signal(signal)

        return RLNWitness(
            identity_secret=identity.secret_identity,
            path_elements=tuple(membership_proof.siblings),
            identity_path_index=tuple(membership_proof.path_indices),
            x=x,
            external_nullifier=compute_external_nullifier(epoch, app_id, self._hasher),
        )
