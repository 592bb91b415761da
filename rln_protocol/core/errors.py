"""Error taxonomy for RLN proof handling.

Domain errors are raised synchronously, before any call into the proving
backend.
"""

from __future__ import annotations


class RLNError(Exception):
    """Base class for all RLN protocol errors."""


class IdentifierMismatch(RLNError):
    """The proof was produced for a different RLN application."""


class NullifierMismatch(RLNError):
    """External or internal nullifiers disagree."""


class ZeroLeaf(RLNError):
    """The registry's reserved empty-leaf value was used as a member."""


class DivisionByZero(RLNError, ZeroDivisionError):
    """Field division by an element congruent to 0 mod p."""


class BackendError(RLNError):
    """The external prover or verifier failed."""
