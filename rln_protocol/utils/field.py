"""Modular arithmetic over the BN254 scalar field."""

from __future__ import annotations

import secrets

from rln_protocol.core.errors import DivisionByZero

# BN254 scalar field prime (same field as the RLN circuits)
BN254_PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617


def normalize(a: int, p: int = BN254_PRIME) -> int:
    """Map any integer to its canonical representative in [0, p)."""
    return a % p


def add(a: int, b: int, p: int = BN254_PRIME) -> int:
    return (a + b) % p


def sub(a: int, b: int, p: int = BN254_PRIME) -> int:
    return (a - b) % p


def mul(a: int, b: int, p: int = BN254_PRIME) -> int:
    return (a * b) % p


def _extended_gcd(a: int, b: int) -> tuple[int, int, int]:
    old_r, r = a, b
    old_s, s = 1, 0
    old_t, t = 0, 1
    while r != 0:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_s, s = s, old_s - q * s
        old_t, t = t, old_t - q * t
    return old_r, old_s, old_t


def inv(a: int, p: int = BN254_PRIME) -> int:
    """Modular multiplicative inverse using the extended Euclidean algorithm.

    Raises:
        DivisionByZero: If ``a`` is congruent to 0 mod p.
    """
    a = a % p
    if a == 0:
        raise DivisionByZero("inverse does not exist for 0 in field")
    g, x, _ = _extended_gcd(a, p)
    if g != 1:
        raise DivisionByZero("Modular inverse does not exist")
    return x % p


def div(a: int, b: int, p: int = BN254_PRIME) -> int:
    """Compute a / b in the field."""
    return (a * inv(b, p)) % p


def random_element(p: int = BN254_PRIME) -> int:
    """Uniformly random field element from the OS CSPRNG."""
    return secrets.randbelow(p)


def is_field_element(value: int, p: int = BN254_PRIME) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < p


def to_field(value: int | str, p: int = BN254_PRIME) -> int:
    """Parse a decimal or ``0x``-prefixed scalar and normalize it into the field."""
    if isinstance(value, bool):
        raise TypeError("bool is not a field element")
    if isinstance(value, int):
        return value % p
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16) % p
    return int(text, 10) % p
