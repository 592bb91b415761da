"""Per-epoch proof cache that turns a repeated nullifier into a slash.

A verifier feeds every accepted proof through ``ProofCache.add_proof``.
The first proof for an internal nullifier in an epoch is remembered; a
second proof with a different signal reveals the sender's secret. Only
the most recent ``cache_length`` epochs are kept.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum

import structlog

from rln_protocol.core.proof import FullProof
from rln_protocol.core.recovery import retrieve_secret

log = structlog.get_logger()

DEFAULT_CACHE_LENGTH = 100


class ProofStatus(Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    BREACH = "breach"
    INVALID = "invalid"


@dataclass(frozen=True)
class CacheResult:
    status: ProofStatus
    nullifier: int
    secret: int | None = None
    message: str = ""


class ProofCache:
    """Thread-safe store of (x, y) shares keyed by epoch and internal nullifier."""

    def __init__(self, cache_length: int = DEFAULT_CACHE_LENGTH) -> None:
        if cache_length < 1:
            raise ValueError(f"cache_length must be >= 1, got {cache_length}")
        self._cache_length = cache_length
        self._epochs: OrderedDict[int, dict[int, FullProof]] = OrderedDict()
        self._lock = threading.Lock()

    def add_proof(self, proof: FullProof) -> CacheResult:
        """Record a proof and report whether its sender exceeded the rate limit."""
        signals = proof.snark_proof.public_signals
        nullifier = signals.internal_nullifier

        with self._lock:
            bucket = self._epochs.get(proof.epoch)
            if bucket is None:
                bucket = {}
                self._epochs[proof.epoch] = bucket
                self._evict_old_epochs()

            previous = bucket.get(nullifier)
            if previous is None:
                bucket[nullifier] = proof
                return CacheResult(status=ProofStatus.ADDED, nullifier=nullifier)

        prev_signals = previous.snark_proof.public_signals
        if prev_signals.signal_hash == signals.signal_hash:
            if prev_signals.y_share == signals.y_share:
                return CacheResult(status=ProofStatus.DUPLICATE, nullifier=nullifier, message="proof already seen")
            log.warning("inconsistent_share", epoch=proof.epoch)
            return CacheResult(status=ProofStatus.INVALID, nullifier=nullifier, message="same x, inconsistent y")

        if prev_signals.external_nullifier != signals.external_nullifier:
            log.warning("inconsistent_external_nullifier", epoch=proof.epoch)
            return CacheResult(
                status=ProofStatus.INVALID,
                nullifier=nullifier,
                message="same internal nullifier, different external nullifier",
            )

        secret = retrieve_secret(previous, proof)
        log.warning("rate_limit_breach", epoch=proof.epoch)
        return CacheResult(status=ProofStatus.BREACH, nullifier=nullifier, secret=secret)

    def _evict_old_epochs(self) -> None:
        while len(self._epochs) > self._cache_length:
            epoch, _ = self._epochs.popitem(last=False)
            log.debug("epoch_evicted", epoch=epoch)

    def remove_epoch(self, epoch: int) -> None:
        with self._lock:
            self._epochs.pop(epoch, None)

    @property
    def epochs(self) -> list[int]:
        with self._lock:
            return list(self._epochs)

    @property
    def count(self) -> int:
        with self._lock:
            return sum(len(b) for b in self._epochs.values())
