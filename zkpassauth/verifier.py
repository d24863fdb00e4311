"""Checks a proof cryptographically and against the stored commitment."""

from __future__ import annotations

import asyncio
import hmac
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .backend import BackendError, ProvingBackend, VerificationKey
from .constants import COMMITMENT_INDEX, DEFAULT_VERIFY_TIMEOUT
from .errors import InvalidInput, VerificationFailed
from .field import is_canonical_decimal, require_identity
from .store import IdentityStore


@dataclass(frozen=True)
class VerificationResult:
    cryptographically_valid: bool
    commitment_matched: bool
    identity_found: bool

    @property
    def authenticated(self) -> bool:
        return self.cryptographically_valid and self.commitment_matched and self.identity_found

    def failed_checks(self) -> List[str]:
        checks = {
            "proof": self.cryptographically_valid,
            "identity": self.identity_found,
            "commitment": self.commitment_matched,
        }
        return [name for name, ok in checks.items() if not ok]


def check_structure(proof: Any, public_outputs: Any, identity: Any) -> List[str]:
    """Validate shapes before any backend or store call."""

    require_identity(identity)
    if not isinstance(proof, dict) or not proof:
        raise InvalidInput("proof must be a non-empty object")
    if not isinstance(public_outputs, (list, tuple)) or not public_outputs:
        raise InvalidInput("publicOutputs must be a non-empty list")
    if not all(is_canonical_decimal(value) for value in public_outputs):
        raise InvalidInput("publicOutputs must be canonical decimal field elements")
    return list(public_outputs)


class ProofVerifier:
    def __init__(
        self,
        backend: ProvingBackend,
        key: VerificationKey,
        store: IdentityStore,
        *,
        timeout: float = DEFAULT_VERIFY_TIMEOUT,
    ) -> None:
        self.backend = backend
        self.key = key
        self.store = store
        self.timeout = timeout

    async def check_proof(self, proof: Dict[str, Any], public_outputs: Sequence[str]) -> bool:
        """Cryptographic check only. Never authorizes anything by itself."""

        if len(public_outputs) != self.key.n_public:
            raise InvalidInput(
                f"publicOutputs must have {self.key.n_public} entries, got {len(public_outputs)}"
            )
        try:
            return bool(
                await asyncio.wait_for(
                    self.backend.verify(self.key, list(public_outputs), proof),
                    timeout=self.timeout,
                )
            )
        except asyncio.TimeoutError as exc:
            raise VerificationFailed(f"Verification timed out after {self.timeout:g}s") from exc
        except BackendError as exc:
            raise VerificationFailed(str(exc)) from exc

    async def lookup(self, identity: str):
        return await asyncio.to_thread(self.store.find_record, identity)

    @staticmethod
    def compare(public_outputs: Sequence[str], stored: str) -> bool:
        return hmac.compare_digest(
            public_outputs[COMMITMENT_INDEX].encode("ascii"), stored.encode("ascii")
        )


__all__ = ["ProofVerifier", "VerificationResult", "check_structure"]
