"""RLN configuration loaded from environment variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from rln_protocol.core.proof import CircuitArtifacts

load_dotenv()


def _int_env(key: str, default: str) -> int:
    val = os.getenv(key, default)
    try:
        return int(val)
    except (ValueError, TypeError, OverflowError):
        raise ValueError(f"Invalid integer for {key}: {val!r}")


def _float_env(key: str, default: str) -> float:
    val = os.getenv(key, default)
    try:
        return float(val)
    except (ValueError, TypeError, OverflowError):
        raise ValueError(f"Invalid float for {key}: {val!r}")


@dataclass(frozen=True)
class Config:
    # Registry
    tree_depth: int = _int_env("RLN_TREE_DEPTH", "20")
    zero_value: int = _int_env("RLN_ZERO_VALUE", "0")

    # Application identifier (decimal string; empty = random per session)
    app_id: str = os.getenv("RLN_IDENTIFIER", "")

    # Circuit artifacts
    wasm_file_path: str = os.getenv("RLN_WASM_FILE_PATH", "zkeyFiles/rln/rln.wasm")
    final_zkey_path: str = os.getenv("RLN_FINAL_ZKEY_PATH", "zkeyFiles/rln/rln_final.zkey")
    verification_key_path: str = os.getenv("RLN_VERIFICATION_KEY_PATH", "zkeyFiles/rln/verification_key.json")

    # Backend
    snarkjs_binary: str = os.getenv("SNARKJS_BINARY", "snarkjs")
    prover_timeout: float = _float_env("RLN_PROVER_TIMEOUT", "120.0")

    # Slashing cache
    cache_length: int = _int_env("RLN_CACHE_LENGTH", "100")

    # Logging
    log_level: str = os.getenv("RLN_LOG_LEVEL", "INFO")
    log_format: str = os.getenv("RLN_LOG_FORMAT", "console")

    @property
    def artifacts(self) -> CircuitArtifacts:
        return CircuitArtifacts(wasm_file_path=self.wasm_file_path, final_zkey_path=self.final_zkey_path)

    @property
    def rln_identifier(self) -> int | None:
        return int(self.app_id) if self.app_id else None

    def load_verification_key(self) -> dict[str, Any]:
        """Read and parse the verification key JSON."""
        path = Path(self.verification_key_path)
        try:
            data = json.loads(path.read_text())
        except FileNotFoundError:
            raise ValueError(f"RLN_VERIFICATION_KEY_PATH does not exist: {path}") from None
        except json.JSONDecodeError as e:
            raise ValueError(f"RLN_VERIFICATION_KEY_PATH is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("verification key must be a JSON object")
        return data

    def validate(self, *, strict: bool = False) -> list[str]:
        """Validate config at startup. Returns list of warnings (empty = all good).

        Args:
            strict: If True, raise ValueError on any warning.
        """
        warnings = []
        if not (16 <= self.tree_depth <= 32):
            raise ValueError(f"RLN_TREE_DEPTH must be 16-32, got {self.tree_depth}")
        if self.zero_value < 0:
            raise ValueError(f"RLN_ZERO_VALUE must be >= 0, got {self.zero_value}")
        if self.app_id and not self.app_id.isdigit():
            raise ValueError(f"RLN_IDENTIFIER must be a decimal integer, got {self.app_id!r}")
        if not self.app_id:
            warnings.append("RLN_IDENTIFIER not set, each session will use a random identifier")
        if self.prover_timeout <= 0:
            raise ValueError(f"RLN_PROVER_TIMEOUT must be > 0, got {self.prover_timeout}")
        if self.cache_length < 1:
            raise ValueError(f"RLN_CACHE_LENGTH must be >= 1, got {self.cache_length}")
        if self.log_format not in ("console", "json"):
            raise ValueError(f"RLN_LOG_FORMAT must be 'console' or 'json', got {self.log_format!r}")
        for name in ("wasm_file_path", "final_zkey_path", "verification_key_path"):
            if not Path(getattr(self, name)).exists():
                warnings.append(f"{name.upper()} does not exist: {getattr(self, name)}")
        if strict and warnings:
            raise ValueError("Config validation failed in strict mode:\n" + "\n".join(f"  - {w}" for w in warnings))
        return warnings
