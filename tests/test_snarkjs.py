"""Tests for the snarkjs subprocess backend."""

from __future__ import annotations

import asyncio
import json
import pathlib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rln_protocol.backends.snarkjs import SnarkjsProver, SnarkjsVerifier, is_available
from rln_protocol.core.errors import BackendError
from rln_protocol.core.proof import CircuitArtifacts

from conftest import MOCK_GROTH16_PROOF, MOCK_VERIFICATION_KEY

ARTIFACTS = CircuitArtifacts(wasm_file_path="rln.wasm", final_zkey_path="rln_final.zkey")
WITNESS = {
    "identitySecret": "1",
    "pathElements": ["0"] * 15,
    "identityPathIndex": [0] * 15,
    "x": "2",
    "externalNullifier": "3",
}
PUBLIC = ["11", "12", "13", "14", "15"]


def _proc(returncode: int, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock()
    return proc


class TestIsAvailable:
    @patch("rln_protocol.backends.snarkjs.shutil.which")
    def test_available_via_which(self, mock_which: MagicMock) -> None:
        mock_which.return_value = "/usr/local/bin/snarkjs"
        assert is_available() is True

    @patch("rln_protocol.backends.snarkjs.shutil.which")
    @patch("rln_protocol.backends.snarkjs.os.path.isfile")
    def test_not_available(self, mock_isfile: MagicMock, mock_which: MagicMock) -> None:
        mock_which.return_value = None
        mock_isfile.return_value = False
        assert is_available() is False


class TestSnarkjsProver:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        seen: dict = {}

        async def mock_subprocess(*args, **kwargs):
            # (binary, "groth16", "fullprove", input, wasm, zkey, proof, public)
            arg_list = list(args)
            seen["args"] = arg_list
            seen["input"] = json.loads(pathlib.Path(arg_list[3]).read_text())
            pathlib.Path(arg_list[6]).write_text(json.dumps(MOCK_GROTH16_PROOF))
            pathlib.Path(arg_list[7]).write_text(json.dumps(PUBLIC))
            return _proc(0)

        with patch("rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec", side_effect=mock_subprocess):
            snark = await SnarkjsProver(binary="snarkjs").prove(WITNESS, ARTIFACTS)

        assert seen["args"][:3] == ["snarkjs", "groth16", "fullprove"]
        assert seen["args"][4:6] == ["rln.wasm", "rln_final.zkey"]
        assert seen["input"] == WITNESS
        assert snark.proof == MOCK_GROTH16_PROOF
        assert snark.public_signals.as_list() == [11, 12, 13, 14, 15]

    @pytest.mark.asyncio
    async def test_nonzero_exit(self) -> None:
        with patch(
            "rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec",
            return_value=_proc(1, stderr=b"Error: Assert Failed"),
        ):
            with pytest.raises(BackendError, match="Assert Failed"):
                await SnarkjsProver(binary="snarkjs").prove(WITNESS, ARTIFACTS)

    @pytest.mark.asyncio
    async def test_missing_output(self) -> None:
        with patch("rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec", return_value=_proc(0)):
            with pytest.raises(BackendError, match="parse"):
                await SnarkjsProver(binary="snarkjs").prove(WITNESS, ARTIFACTS)

    @pytest.mark.asyncio
    async def test_wrong_signal_count(self) -> None:
        async def mock_subprocess(*args, **kwargs):
            pathlib.Path(args[6]).write_text(json.dumps(MOCK_GROTH16_PROOF))
            pathlib.Path(args[7]).write_text(json.dumps(["1", "2"]))
            return _proc(0)

        with patch("rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec", side_effect=mock_subprocess):
            with pytest.raises(BackendError, match="expected 5"):
                await SnarkjsProver(binary="snarkjs").prove(WITNESS, ARTIFACTS)

    @pytest.mark.asyncio
    async def test_binary_not_found(self) -> None:
        with patch(
            "rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec",
            side_effect=FileNotFoundError("not found"),
        ):
            with pytest.raises(BackendError, match="not found"):
                await SnarkjsProver(binary="/nonexistent/snarkjs").prove(WITNESS, ARTIFACTS)

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self) -> None:
        proc = _proc(0)

        async def hang():
            await asyncio.sleep(10)

        proc.communicate = AsyncMock(side_effect=hang)
        proc.kill = MagicMock()
        with patch("rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(BackendError, match="timed out"):
                await SnarkjsProver(binary="snarkjs", timeout=0.01).prove(WITNESS, ARTIFACTS)
        proc.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_caller_cancellation_kills_process(self) -> None:
        """A caller-side timeout cancels the task; the child must not outlive it."""
        proc = _proc(0)
        started = asyncio.Event()

        async def hang():
            started.set()
            await asyncio.sleep(10)

        proc.communicate = AsyncMock(side_effect=hang)
        proc.kill = MagicMock()
        with patch("rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec", return_value=proc):
            task = asyncio.create_task(SnarkjsProver(binary="snarkjs").prove(WITNESS, ARTIFACTS))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        proc.kill.assert_called_once()
        proc.wait.assert_awaited()

    @pytest.mark.asyncio
    async def test_kill_of_exited_process_is_tolerated(self) -> None:
        proc = _proc(0)

        async def hang():
            await asyncio.sleep(10)

        proc.communicate = AsyncMock(side_effect=hang)
        proc.kill = MagicMock(side_effect=ProcessLookupError())
        with patch("rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(BackendError, match="timed out"):
                await SnarkjsProver(binary="snarkjs", timeout=0.01).prove(WITNESS, ARTIFACTS)


class TestSnarkjsVerifier:
    @pytest.mark.asyncio
    async def test_valid_proof(self) -> None:
        seen: dict = {}

        async def mock_subprocess(*args, **kwargs):
            seen["vkey"] = json.loads(pathlib.Path(args[3]).read_text())
            seen["public"] = json.loads(pathlib.Path(args[4]).read_text())
            return _proc(0, stdout=b"[INFO]  snarkJS: OK!")

        with patch("rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec", side_effect=mock_subprocess):
            valid = await SnarkjsVerifier(binary="snarkjs").verify(
                MOCK_VERIFICATION_KEY, [11, 12, 13, 14, 15], MOCK_GROTH16_PROOF
            )

        assert valid is True
        assert seen["vkey"] == MOCK_VERIFICATION_KEY
        assert seen["public"] == PUBLIC

    @pytest.mark.asyncio
    async def test_invalid_proof(self) -> None:
        with patch(
            "rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec",
            return_value=_proc(1, stdout=b"[ERROR] snarkJS: Invalid proof"),
        ):
            valid = await SnarkjsVerifier(binary="snarkjs").verify(
                MOCK_VERIFICATION_KEY, [11, 12, 13, 14, 15], MOCK_GROTH16_PROOF
            )
        assert valid is False

    @pytest.mark.asyncio
    async def test_unexpected_failure(self) -> None:
        with patch(
            "rln_protocol.backends.snarkjs.asyncio.create_subprocess_exec",
            return_value=_proc(1, stderr=b"Error: ENOENT verification_key.json"),
        ):
            with pytest.raises(BackendError, match="ENOENT"):
                await SnarkjsVerifier(binary="snarkjs").verify(
                    MOCK_VERIFICATION_KEY, [11, 12, 13, 14, 15], MOCK_GROTH16_PROOF
                )
