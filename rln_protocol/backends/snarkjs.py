"""Groth16 prover/verifier backed by the ``snarkjs`` CLI.

Calls ``snarkjs groth16 fullprove`` and ``snarkjs groth16 verify`` in a
scratch directory. Inputs and outputs are exchanged as JSON files with
scalars as decimal strings, the format the RLN circom circuit expects.

Failures of the binary (missing executable, non-zero exit that is not an
invalid-proof verdict, unparseable output, caller-imposed timeout) are
raised as ``BackendError`` with the CLI output attached.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

import structlog

from rln_protocol.core.errors import BackendError
from rln_protocol.core.proof import CircuitArtifacts, PublicSignals, SNARKProof

log = structlog.get_logger()

SNARKJS_BINARY = os.getenv(
    "SNARKJS_BINARY",
    shutil.which("snarkjs") or "snarkjs",
)

_MAX_ERROR_CHARS = 500


def is_available(binary: str | None = None) -> bool:
    """Check if the snarkjs binary is available."""
    binary = binary or SNARKJS_BINARY
    if shutil.which(binary):
        return True
    return os.path.isfile(binary) and os.access(binary, os.X_OK)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except (ProcessLookupError, OSError) as kill_err:
        log.debug("snarkjs_process_kill_failed", error=str(kill_err))
    try:
        await asyncio.wait_for(proc.wait(), timeout=5.0)
    except (TimeoutError, OSError) as wait_err:
        log.warning("snarkjs_process_wait_failed", error=str(wait_err), pid=proc.pid)


async def _run(binary: str, args: list[str], timeout: float | None) -> tuple[int, str, str]:
    try:
        proc = await asyncio.create_subprocess_exec(
            binary,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise BackendError(f"snarkjs binary not found: {binary}") from None

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        log.error("snarkjs_timeout", command=args[1], timeout=timeout)
        await _terminate(proc)
        raise BackendError(f"snarkjs {args[0]} {args[1]} timed out after {timeout}s") from None
    except BaseException:
        # Cancelled by the caller; the scratch directory is about to go away.
        log.warning("snarkjs_cancelled", command=args[1], pid=proc.pid)
        await _terminate(proc)
        raise

    return (
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode(errors="replace").strip(),
        stderr.decode(errors="replace").strip(),
    )


class SnarkjsProver:
    """``Prover`` that shells out to ``snarkjs groth16 fullprove``."""

    def __init__(self, binary: str | None = None, timeout: float | None = None) -> None:
        self._binary = binary or SNARKJS_BINARY
        self._timeout = timeout

    async def prove(self, witness: dict[str, object], artifacts: CircuitArtifacts) -> SNARKProof:
        with tempfile.TemporaryDirectory(prefix="rln-prove-") as tmp:
            workdir = Path(tmp)
            input_path = workdir / "input.json"
            proof_path = workdir / "proof.json"
            public_path = workdir / "public.json"
            input_path.write_text(json.dumps(witness))

            code, stdout, stderr = await _run(
                self._binary,
                [
                    "groth16",
                    "fullprove",
                    str(input_path),
                    artifacts.wasm_file_path,
                    artifacts.final_zkey_path,
                    str(proof_path),
                    str(public_path),
                ],
                self._timeout,
            )
            if code != 0:
                error = (stderr or stdout or "unknown error")[:_MAX_ERROR_CHARS]
                log.warning("snarkjs_fullprove_failed", returncode=code, error=error)
                raise BackendError(f"snarkjs fullprove failed: {error}")

            try:
                proof = json.loads(proof_path.read_text())
                public = json.loads(public_path.read_text())
                public_signals = PublicSignals.from_list(public)
            except (OSError, json.JSONDecodeError, ValueError, TypeError) as e:
                raise BackendError(f"failed to parse snarkjs output: {e}") from e

        return SNARKProof(proof=proof, public_signals=public_signals)


class SnarkjsVerifier:
    """``Verifier`` that shells out to ``snarkjs groth16 verify``."""

    def __init__(self, binary: str | None = None, timeout: float | None = None) -> None:
        self._binary = binary or SNARKJS_BINARY
        self._timeout = timeout

    async def verify(
        self,
        verification_key: dict[str, Any],
        public_signals: list[int],
        proof: dict[str, Any],
    ) -> bool:
        with tempfile.TemporaryDirectory(prefix="rln-verify-") as tmp:
            workdir = Path(tmp)
            vkey_path = workdir / "verification_key.json"
            public_path = workdir / "public.json"
            proof_path = workdir / "proof.json"
            vkey_path.write_text(json.dumps(verification_key))
            public_path.write_text(json.dumps([str(s) for s in public_signals]))
            proof_path.write_text(json.dumps(proof))

            code, stdout, stderr = await _run(
                self._binary,
                ["groth16", "verify", str(vkey_path), str(public_path), str(proof_path)],
                self._timeout,
            )

        output = f"{stdout}\n{stderr}"
        if code == 0 and "OK" in output:
            return True
        if "Invalid proof" in output:
            log.info("snarkjs_proof_invalid")
            return False
        error = (stderr or stdout or "unknown error")[:_MAX_ERROR_CHARS]
        log.warning("snarkjs_verify_failed", returncode=code, error=error)
        raise BackendError(f"snarkjs verify failed: {error}")
