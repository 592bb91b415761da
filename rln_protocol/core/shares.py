"""Evaluation of the degree-1 share polynomial.

For every (identity, epoch, app) the participant commits to the line

    y = a1 * x + secret_identity   (mod p)

where ``a1 = Hash(secret_identity, external_nullifier)``. Each message
reveals one point (x, y) on that line; two points reveal the line and with
it the secret.
"""

from __future__ import annotations

from rln_protocol.core.nullifiers import compute_external_nullifier, compute_internal_nullifier
from rln_protocol.utils import field as fq
from rln_protocol.utils.hashing import FieldHasher


def compute_share_coefficient(secret_identity: int, external_nullifier: int, hasher: FieldHasher) -> int:
    return hasher([secret_identity, external_nullifier])


def compute_y_share(a1: int, x: int, secret_identity: int) -> int:
    return fq.normalize(a1 * x + secret_identity)


def calculate_output(
    secret_identity: int,
    epoch: int,
    app_id: int,
    signal_hash: int,
    hasher: FieldHasher,
) -> tuple[int, int]:
    """Compute the (y_share, internal_nullifier) pair a proof will expose.

    Mirrors the circuit's public outputs so callers can predict them
    without running the prover.
    """
    external_nullifier = compute_external_nullifier(epoch, app_id, hasher)
    a1 = compute_share_coefficient(secret_identity, external_nullifier, hasher)
    y_share = compute_y_share(a1, signal_hash, secret_identity)
    internal_nullifier = compute_internal_nullifier(a1, app_id, hasher)
    return y_share, internal_nullifier
