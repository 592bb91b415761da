"""RLN participant identity.

An identity is two random seeds. Everything else is derived:

    secret_identity = Hash(nullifier_seed, trapdoor_seed)
    commitment      = Hash(secret_identity)

The commitment is the public value inserted into the membership registry;
the secret identity is the constant term of every share polynomial and is
what leaks when a participant exceeds the rate limit.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from rln_protocol.utils import field as fq
from rln_protocol.utils.hashing import FieldHasher


@dataclass(frozen=True)
class Identity:
    nullifier_seed: int
    trapdoor_seed: int
    secret_identity: int = field(repr=False)
    commitment: int

    @classmethod
    def from_seeds(cls, nullifier_seed: int | str, trapdoor_seed: int | str, hasher: FieldHasher) -> Identity:
        """Rebuild an identity deterministically from its two seeds."""
        nullifier = fq.to_field(nullifier_seed)
        trapdoor = fq.to_field(trapdoor_seed)
        secret = hasher([nullifier, trapdoor])
        return cls(
            nullifier_seed=nullifier,
            trapdoor_seed=trapdoor,
            secret_identity=secret,
            commitment=hasher([secret]),
        )

    @classmethod
    def generate(cls, hasher: FieldHasher) -> Identity:
        """Create a fresh identity from CSPRNG seeds."""
        return cls.from_seeds(fq.random_element(), fq.random_element(), hasher)

    def to_dict(self) -> dict[str, str]:
        """Serialize the seeds only, as decimal strings."""
        return {
            "nullifier": str(self.nullifier_seed),
            "trapdoor": str(self.trapdoor_seed),
        }

    @classmethod
    def from_dict(cls, data: dict[str, str], hasher: FieldHasher) -> Identity:
        missing = [k for k in ("nullifier", "trapdoor") if k not in data]
        if missing:
            raise KeyError(f"missing identity keys: {', '.join(missing)}")
        return cls.from_seeds(data["nullifier"], data["trapdoor"], hasher)
