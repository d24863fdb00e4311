"""Produces a proof that the caller knows the secret behind a commitment."""

from __future__ import annotations

import asyncio
import logging

from .backend import BackendError, CircuitArtifacts, ProofBundle, ProvingBackend, VerificationKey
from .commitment import CommitmentScheme, Witness
from .constants import COMMITMENT_INDEX, DEFAULT_PROVE_TIMEOUT, DEFAULT_VERIFY_TIMEOUT
from .errors import CircuitMisconfigured, InvalidInput, ProvingFailed
from .field import is_canonical_decimal

log = logging.getLogger(__name__)


class ProofProducer:
    def __init__(
        self,
        backend: ProvingBackend,
        artifacts: CircuitArtifacts,
        scheme: CommitmentScheme,
        *,
        timeout: float = DEFAULT_PROVE_TIMEOUT,
        self_check_key: VerificationKey | None = None,
        self_check_timeout: float = DEFAULT_VERIFY_TIMEOUT,
    ) -> None:
        self.backend = backend
        self.artifacts = artifacts
        self.scheme = scheme
        self.timeout = timeout
        self.self_check_key = self_check_key
        self.self_check_timeout = self_check_timeout

    async def prove(self, witness: Witness) -> ProofBundle:
        """Run the backend and return the proof with its public outputs.

        Raises :class:`ProvingFailed` for backend errors, timeouts and
        malformed output, and :class:`CircuitMisconfigured` when the circuit
        commits to a different value than the host computes.
        """

        if not witness.is_reduced():
            raise InvalidInput("Witness must be reduced into the field")
        expected = self.scheme.commit(witness)

        try:
            proof, public = await asyncio.wait_for(
                self.backend.prove(witness.to_circuit_input(), self.artifacts),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProvingFailed(f"Proving timed out after {self.timeout:g}s") from exc
        except BackendError as exc:
            raise ProvingFailed(str(exc)) from exc

        if not isinstance(proof, dict) or not proof:
            raise ProvingFailed("Backend returned an empty proof")
        if not public or not all(is_canonical_decimal(value) for value in public):
            raise ProvingFailed("Backend returned malformed public outputs")

        if public[COMMITMENT_INDEX] != expected.decimal:
            raise CircuitMisconfigured(
                "Circuit commitment output does not match the host Poseidon commitment; "
                "check the circuit artifacts and Poseidon parameters"
            )

        bundle = ProofBundle(proof=proof, public_outputs=tuple(public))
        if self.self_check_key is not None:
            await self._self_check(bundle)
        return bundle

    async def _self_check(self, bundle: ProofBundle) -> None:
        try:
            valid = await asyncio.wait_for(
                self.backend.verify(self.self_check_key, list(bundle.public_outputs), bundle.proof),
                timeout=self.self_check_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProvingFailed("Self-check verification timed out") from exc
        except BackendError as exc:
            raise ProvingFailed(f"Self-check verification failed: {exc}") from exc
        if not valid:
            raise ProvingFailed("Freshly produced proof does not verify")
        log.debug("proof passed self-check")


__all__ = ["ProofProducer"]
