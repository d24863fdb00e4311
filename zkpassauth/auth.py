"""Enrollment and authentication flows.

Enroll:        IDLE -> ENCODING -> PROVING -> COMMITTING -> ENROLLED_OK | ENROLL_FAILED
Authenticate:  IDLE -> VERIFYING -> LOOKING_UP -> COMPARING -> AUTH_OK | AUTH_FAILED

Per-request failures end in a failed terminal state tagged with an
:class:`ErrorKind`. Nothing is retried here; a failed enrollment never
leaves a record behind, so callers may replay it from scratch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .backend import CircuitArtifacts, ProofBundle, ProvingBackend, SnarkjsBackend, load_verification_key
from .commitment import CommitmentScheme, Witness
from .config import Settings
from .errors import ErrorKind, IdentityExists, InvalidInput, ProvingFailed, StoreError, VerificationFailed
from .poseidon import load_params_json
from .prover import ProofProducer
from .store import IdentityStore
from .verifier import ProofVerifier, VerificationResult, check_structure

log = logging.getLogger(__name__)


class EnrollState(str, Enum):
    IDLE = "Idle"
    ENCODING = "Encoding"
    PROVING = "Proving"
    COMMITTING = "Committing"
    ENROLLED_OK = "EnrolledOk"
    ENROLL_FAILED = "EnrollFailed"


class AuthState(str, Enum):
    IDLE = "Idle"
    VERIFYING = "Verifying"
    LOOKING_UP = "LookingUp"
    COMPARING = "Comparing"
    AUTH_OK = "AuthOk"
    AUTH_FAILED = "AuthFailed"


@dataclass(frozen=True)
class EnrollResult:
    state: EnrollState
    identity: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    bundle: Optional[ProofBundle] = None
    trail: Tuple[EnrollState, ...] = field(default=(), repr=False)

    @property
    def success(self) -> bool:
        return self.state is EnrollState.ENROLLED_OK

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.error_kind is not None:
            payload["errorKind"] = self.error_kind.value
        if self.success:
            payload["identity"] = self.identity
        return payload


@dataclass(frozen=True)
class AuthResult:
    state: AuthState
    verification: VerificationResult = VerificationResult(False, False, False)
    error_kind: Optional[ErrorKind] = None
    trail: Tuple[AuthState, ...] = field(default=(), repr=False)

    @property
    def success(self) -> bool:
        return self.state is AuthState.AUTH_OK

    def to_dict(self) -> Dict[str, Any]:
        # identity_found is left out on purpose: an unknown identity must look
        # the same as a commitment mismatch to the caller.
        payload: Dict[str, Any] = {
            "success": self.success,
            "cryptographicallyValid": self.verification.cryptographically_valid,
            "commitmentMatched": self.verification.commitment_matched,
        }
        if self.error_kind is not None:
            payload["errorKind"] = self.error_kind.value
        return payload


class Authenticator:
    def __init__(self, store: IdentityStore, producer: ProofProducer, verifier: ProofVerifier) -> None:
        self.store = store
        self.producer = producer
        self.verifier = verifier

    async def enroll(self, identity: str, secret: str) -> EnrollResult:
        trail = [EnrollState.IDLE]

        def failed(kind: ErrorKind, reason: object) -> EnrollResult:
            trail.append(EnrollState.ENROLL_FAILED)
            log.warning("enroll %r failed in %s: %s (%s)", identity, trail[-2].value, kind.value, reason)
            return EnrollResult(EnrollState.ENROLL_FAILED, identity=identity, error_kind=kind, trail=tuple(trail))

        trail.append(EnrollState.ENCODING)
        try:
            witness = Witness.build(identity, secret)
        except InvalidInput as exc:
            return failed(ErrorKind.INVALID_INPUT, exc)

        trail.append(EnrollState.PROVING)
        try:
            bundle = await self.producer.prove(witness)
        except ProvingFailed as exc:
            return failed(ErrorKind.PROVING_FAILED, exc)

        trail.append(EnrollState.COMMITTING)
        try:
            await asyncio.to_thread(self.store.create_record, identity, bundle.public_outputs[0])
        except IdentityExists as exc:
            return failed(ErrorKind.DUPLICATE_IDENTITY, exc)
        except StoreError as exc:
            return failed(ErrorKind.STORE_ERROR, exc)

        trail.append(EnrollState.ENROLLED_OK)
        log.info("enrolled %r", identity)
        return EnrollResult(EnrollState.ENROLLED_OK, identity=identity, bundle=bundle, trail=tuple(trail))

    async def authenticate(self, identity: str, proof: Any, public_outputs: Any) -> AuthResult:
        trail = [AuthState.IDLE]

        def finish(
            verification: VerificationResult, kind: Optional[ErrorKind] = None, reason: object = None
        ) -> AuthResult:
            state = AuthState.AUTH_OK if verification.authenticated and kind is None else AuthState.AUTH_FAILED
            trail.append(state)
            if state is AuthState.AUTH_OK:
                log.info("authenticated %r", identity)
            else:
                log.warning(
                    "authentication of %r failed in %s: %s",
                    identity,
                    trail[-2].value,
                    reason or "failed " + ", ".join(verification.failed_checks()),
                )
            return AuthResult(state, verification=verification, error_kind=kind, trail=tuple(trail))

        nothing = VerificationResult(False, False, False)

        trail.append(AuthState.VERIFYING)
        try:
            public = check_structure(proof, public_outputs, identity)
            valid = await self.verifier.check_proof(proof, public)
        except InvalidInput as exc:
            return finish(nothing, ErrorKind.INVALID_INPUT, exc)
        except VerificationFailed as exc:
            return finish(nothing, ErrorKind.VERIFICATION_FAILED, exc)
        if not valid:
            return finish(nothing, ErrorKind.VERIFICATION_FAILED, "proof rejected by backend")

        trail.append(AuthState.LOOKING_UP)
        try:
            record = await self.verifier.lookup(identity)
        except StoreError as exc:
            return finish(VerificationResult(True, False, False), ErrorKind.STORE_ERROR, exc)
        if record is None:
            return finish(VerificationResult(True, False, False))

        trail.append(AuthState.COMPARING)
        matched = self.verifier.compare(public, record.commitment)
        return finish(VerificationResult(True, matched, True))


def build_authenticator(
    settings: Settings,
    store: IdentityStore,
    backend: Optional[ProvingBackend] = None,
) -> Authenticator:
    """Wire the flows from settings, loading key material once."""

    backend = backend or SnarkjsBackend(settings.snarkjs)
    params = load_params_json(settings.poseidon_params) if settings.poseidon_params else None
    scheme = CommitmentScheme(params)
    key = load_verification_key(settings.verification_key)
    producer = ProofProducer(
        backend,
        CircuitArtifacts(wasm=settings.circuit_wasm, zkey=settings.circuit_zkey),
        scheme,
        timeout=settings.prove_timeout,
        self_check_key=key if settings.self_check else None,
        self_check_timeout=settings.verify_timeout,
    )
    verifier = ProofVerifier(backend, key, store, timeout=settings.verify_timeout)
    return Authenticator(store, producer, verifier)


__all__ = [
    "AuthResult",
    "AuthState",
    "Authenticator",
    "EnrollResult",
    "EnrollState",
    "build_authenticator",
]
