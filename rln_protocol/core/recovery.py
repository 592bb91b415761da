"""Slashing: recover an identity secret from two shares of the same epoch."""

from __future__ import annotations

import structlog

from rln_protocol.core.errors import DivisionByZero, NullifierMismatch
from rln_protocol.core.proof import FullProof
from rln_protocol.utils import field as fq

log = structlog.get_logger()


def shamir_recovery(x1: int, x2: int, y1: int, y2: int) -> int:
    """Recover the constant term of the line through (x1, y1) and (x2, y2).

    Using:
      slope  = (y2 - y1) / (x2 - x1)
      secret = y1 - slope * x1
    """
    if fq.normalize(x1) == fq.normalize(x2):
        raise DivisionByZero("x1 and x2 are equal; recovery requires two distinct messages")
    slope = fq.div(fq.sub(y2, y1), fq.sub(x2, x1))
    return fq.normalize(fq.sub(y1, fq.mul(slope, x1)))


def retrieve_secret(proof1: FullProof, proof2: FullProof) -> int:
    """Recover the sender's secret from two proofs sharing an internal nullifier.

    Raises:
        NullifierMismatch: External nullifiers differ (different epoch or app),
            or internal nullifiers differ (different sender).
        DivisionByZero: Both proofs carry the same signal hash.
    """
    s1 = proof1.snark_proof.public_signals
    s2 = proof2.snark_proof.public_signals

    if s1.external_nullifier != s2.external_nullifier:
        raise NullifierMismatch("External Nullifiers do not match! Cannot recover secret.")
    # The internal nullifier binds identity, epoch and app together, so a
    # mismatch means different senders.
    if s1.internal_nullifier != s2.internal_nullifier:
        raise NullifierMismatch("Internal Nullifiers do not match! Cannot recover secret.")

    secret = shamir_recovery(s1.signal_hash, s2.signal_hash, s1.y_share, s2.y_share)
    log.warning("identity_secret_recovered", internal_nullifier=f"{s1.internal_nullifier:x}"[:16])
    return secret
