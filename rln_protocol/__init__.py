"""Rate-Limiting Nullifier protocol core."""

__version__ = "0.1.0"
