"""External and internal nullifier derivation.

Argument order is part of the protocol: the circuit hashes
``(epoch, rln_identifier)`` and ``(a1, rln_identifier)`` in exactly this
order, so swapping them yields proofs that never verify.
"""

from __future__ import annotations

import time

from rln_protocol.utils.field import to_field
from rln_protocol.utils.hashing import FieldHasher, hash_to_field


def compute_external_nullifier(epoch: int, app_id: int, hasher: FieldHasher) -> int:
    """Public nullifier shared by every participant of (epoch, app)."""
    return hasher([to_field(epoch), to_field(app_id)])


def compute_internal_nullifier(a1: int, app_id: int, hasher: FieldHasher) -> int:
    """Per-identity, per-epoch nullifier revealed in every proof."""
    return hasher([to_field(a1), to_field(app_id)])


def current_epoch(now: float | None = None) -> int:
    """Unix time rounded down to the second."""
    return int(now if now is not None else time.time())


def epoch_from_string(label: str) -> int:
    """Derive an epoch from an application-chosen label (e.g. a topic name)."""
    if not label:
        raise ValueError("epoch label must not be empty")
    return hash_to_field(label)
