"""Boundary to the external Groth16 proving system.

The proving system is consumed as a black box: a circuit program plus a
witness goes in, a proof plus its public outputs comes out; a verification
key, public outputs and a proof go in, a boolean comes out.
:class:`SnarkjsBackend` drives the ``snarkjs`` command line tool.
"""

from __future__ import annotations

import abc
import asyncio
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .constants import DEFAULT_SNARKJS

log = logging.getLogger(__name__)

Proof = Dict[str, Any]
PublicOutputs = List[str]


class BackendError(Exception):
    """The backend could not produce or check a proof."""


@dataclass(frozen=True)
class CircuitArtifacts:
    wasm: str
    zkey: str

    def check(self) -> None:
        for path in (self.wasm, self.zkey):
            if not os.path.isfile(path):
                raise BackendError(f"Circuit artifact not found: {path}")


@dataclass(frozen=True)
class ProofBundle:
    proof: Proof
    public_outputs: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"proof": dict(self.proof), "publicSignals": list(self.public_outputs)}


_VK_KEYS = ("vk_alpha_1", "vk_beta_2", "vk_gamma_2", "vk_delta_2", "IC")


@dataclass(frozen=True)
class VerificationKey:
    """Groth16 verification key, loaded once and shared read-only."""

    data: Mapping[str, Any]
    source: str | None = None

    @property
    def n_public(self) -> int:
        return len(self.data["IC"]) - 1

    @staticmethod
    def from_dict(data: Mapping[str, Any], source: str | None = None) -> "VerificationKey":
        missing = [key for key in _VK_KEYS if key not in data]
        if missing:
            raise BackendError(f"Verification key is missing {', '.join(missing)}")
        protocol = str(data.get("protocol", "groth16")).lower()
        if protocol != "groth16":
            raise BackendError(f"Unsupported proving protocol '{protocol}'")
        if not isinstance(data["IC"], list) or len(data["IC"]) < 2:
            raise BackendError("Verification key declares no public outputs")
        return VerificationKey(data=MappingProxyType(dict(data)), source=source)


def load_verification_key(path: str) -> VerificationKey:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise BackendError(f"Could not load verification key {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise BackendError("Verification key must be a JSON object")
    return VerificationKey.from_dict(raw, source=path)


class ProvingBackend(abc.ABC):
    @abc.abstractmethod
    async def prove(
        self, inputs: Mapping[str, str], artifacts: CircuitArtifacts
    ) -> Tuple[Proof, PublicOutputs]:
        """Return the proof and the public outputs for ``inputs``."""

    @abc.abstractmethod
    async def verify(
        self, key: VerificationKey, public_outputs: Sequence[str], proof: Proof
    ) -> bool:
        """Return whether ``proof`` is valid for ``public_outputs`` under ``key``."""


def _write_json(path: str, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle)


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


class SnarkjsBackend(ProvingBackend):
    """Groth16 through the ``snarkjs`` CLI, one child process per call."""

    def __init__(self, executable: str = DEFAULT_SNARKJS) -> None:
        self.executable = executable

    async def _run(self, *args: str) -> Tuple[int, str]:
        log.debug("running %s %s", self.executable, " ".join(args[:2]))
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise BackendError(f"Could not start {self.executable}: {exc}") from exc
        try:
            output, _ = await process.communicate()
        except asyncio.CancelledError:
            # Timeouts arrive as cancellation; do not leave the prover running.
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        return process.returncode or 0, output.decode("utf-8", errors="replace")

    async def prove(
        self, inputs: Mapping[str, str], artifacts: CircuitArtifacts
    ) -> Tuple[Proof, PublicOutputs]:
        artifacts.check()
        with tempfile.TemporaryDirectory(prefix="zkpass-prove-") as workdir:
            input_path = os.path.join(workdir, "input.json")
            proof_path = os.path.join(workdir, "proof.json")
            public_path = os.path.join(workdir, "public.json")
            _write_json(input_path, dict(inputs))
            code, output = await self._run(
                "groth16", "fullprove", input_path, artifacts.wasm, artifacts.zkey,
                proof_path, public_path,
            )
            if code != 0:
                raise BackendError(f"snarkjs fullprove exited with {code}: {output.strip()}")
            try:
                proof = _read_json(proof_path)
                public = _read_json(public_path)
            except (OSError, json.JSONDecodeError) as exc:
                raise BackendError(f"snarkjs produced unreadable output: {exc}") from exc
        if not isinstance(proof, dict) or not isinstance(public, list):
            raise BackendError("snarkjs produced a malformed proof")
        return proof, [str(value) for value in public]

    async def verify(
        self, key: VerificationKey, public_outputs: Sequence[str], proof: Proof
    ) -> bool:
        with tempfile.TemporaryDirectory(prefix="zkpass-verify-") as workdir:
            key_path = os.path.join(workdir, "verification_key.json")
            public_path = os.path.join(workdir, "public.json")
            proof_path = os.path.join(workdir, "proof.json")
            _write_json(key_path, dict(key.data))
            _write_json(public_path, list(public_outputs))
            _write_json(proof_path, dict(proof))
            code, output = await self._run("groth16", "verify", key_path, public_path, proof_path)
        if "Invalid proof" in output:
            return False
        if code == 0 and "OK" in output:
            return True
        raise BackendError(f"snarkjs verify exited with {code}: {output.strip()}")


__all__ = [
    "BackendError",
    "CircuitArtifacts",
    "Proof",
    "ProofBundle",
    "ProvingBackend",
    "PublicOutputs",
    "SnarkjsBackend",
    "VerificationKey",
    "load_verification_key",
]
