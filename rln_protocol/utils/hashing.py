"""Hash primitives consumed by the RLN core.

The circuit-side hash (Poseidon over BN254) is an external black box: the
core only sees it through the ``FieldHasher`` protocol and never assumes a
particular implementation. ``KeccakFieldHasher`` is a keccak256-based
stand-in for off-circuit tooling and tests; proofs produced by a real RLN
circuit only verify when the session is wired to the circuit's Poseidon.

Signal hashing is NOT pluggable. Deployed verification keys expect
``keccak256(utf8(signal)) >> 8`` and that reduction is fixed here.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from web3 import Web3

from rln_protocol.utils.field import BN254_PRIME, to_field

# 256-bit keccak digest shifted into 248 bits, always below the BN254 prime
SIGNAL_HASH_SHIFT = 8


class FieldHasher(Protocol):
    """Hash a sequence of field elements to a single field element."""

    def __call__(self, inputs: Sequence[int]) -> int: ...


class KeccakFieldHasher:
    """keccak256 over abi-packed uint256 words, reduced into the field.

    Not Poseidon: commitments and registry roots built with this hasher never
    match the RLN circuit, so a proof's ``merkle_root`` cannot be checked
    against an ``InMemoryRegistry`` using it.
    """

    def __init__(self, prime: int = BN254_PRIME) -> None:
        self._prime = prime

    def __call__(self, inputs: Sequence[int]) -> int:
        if not inputs:
            raise ValueError("hash requires at least one input")
        words = [to_field(v, self._prime) for v in inputs]
        digest = Web3.solidity_keccak(["uint256"] * len(words), words)
        return int.from_bytes(digest, "big") % self._prime

    def __repr__(self) -> str:
        return "KeccakFieldHasher()"


def hash_signal(signal: str | bytes) -> int:
    """Hash a raw signal into the x-coordinate of an RLN share.

    Uses keccak256 over the UTF-8 bytes of the signal, shifted right by 8
    bits so the result fits in the scalar field.
    """
    data = signal.encode("utf-8") if isinstance(signal, str) else bytes(signal)
    digest = Web3.keccak(data)
    return int.from_bytes(digest, "big") >> SIGNAL_HASH_SHIFT


def hash_to_field(label: str) -> int:
    """Deterministically map an application-chosen string into the field.

    Same reduction as ``hash_signal``; used to derive epochs and app
    identifiers from human-readable names.
    """
    return hash_signal(label)
