"""In-process stand-in for the proving system used across the test suite."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
from typing import Mapping, Sequence

from zkpassauth.backend import BackendError, CircuitArtifacts, ProvingBackend, VerificationKey
from zkpassauth.commitment import CommitmentScheme, Witness

STUB_VK = {
    "protocol": "groth16",
    "curve": "bn128",
    "nPublic": 1,
    "vk_alpha_1": ["1", "2", "1"],
    "vk_beta_2": [["1", "0"], ["1", "0"], ["1", "0"]],
    "vk_gamma_2": [["1", "0"], ["1", "0"], ["1", "0"]],
    "vk_delta_2": [["1", "0"], ["1", "0"], ["1", "0"]],
    "IC": [["1", "2", "1"], ["1", "2", "1"]],
}

ARTIFACTS = CircuitArtifacts(wasm="circuit.wasm", zkey="circuit_0000.zkey")


def stub_key() -> VerificationKey:
    return VerificationKey.from_dict(STUB_VK)


def write_stub_key(path: str) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(STUB_VK, handle)


class StubBackend(ProvingBackend):
    """Computes the real commitment and MAC-tags the public outputs.

    A proof verifies only for the exact public outputs it was produced with,
    which is enough to exercise every branch of the flows.
    """

    def __init__(
        self,
        scheme: CommitmentScheme | None = None,
        *,
        delay: float = 0.0,
        prove_error: bool = False,
        verify_error: bool = False,
        verify_result: bool | None = None,
        commitment_override: str | None = None,
        public_override: list | None = None,
    ) -> None:
        self.scheme = scheme or CommitmentScheme()
        self.delay = delay
        self.prove_error = prove_error
        self.verify_error = verify_error
        self.verify_result = verify_result
        self.commitment_override = commitment_override
        self.public_override = public_override
        self.prove_calls = 0
        self.verify_calls = 0

    @staticmethod
    def _tag(public_outputs: Sequence[str]) -> str:
        message = json.dumps(list(public_outputs)).encode("utf-8")
        return hmac.new(b"stub-proving-key", message, hashlib.sha256).hexdigest()

    async def prove(self, inputs: Mapping[str, str], artifacts: CircuitArtifacts):
        self.prove_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.prove_error:
            raise BackendError("prover crashed")
        if self.public_override is not None:
            public = list(self.public_override)
        else:
            witness = Witness(identity=int(inputs["identity"]), secret=int(inputs["secret"]))
            public = [self.commitment_override or self.scheme.commit(witness).decimal]
        return {"protocol": "stub", "tag": self._tag(public)}, public

    async def verify(self, key: VerificationKey, public_outputs: Sequence[str], proof) -> bool:
        self.verify_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.verify_error:
            raise BackendError("malformed verification key")
        if self.verify_result is not None:
            return self.verify_result
        return hmac.compare_digest(str(proof.get("tag", "")), self._tag(public_outputs))
