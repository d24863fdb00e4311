"""Error taxonomy shared by every stage of enrollment and authentication."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "InvalidInput"
    PROVING_FAILED = "ProvingFailed"
    DUPLICATE_IDENTITY = "DuplicateIdentity"
    STORE_ERROR = "StoreError"
    VERIFICATION_FAILED = "VerificationFailed"


class ZKPassError(Exception):
    """Base class for recoverable, per-request failures."""

    kind: ErrorKind


class InvalidInput(ZKPassError, ValueError):
    """Malformed identity, secret, proof or public outputs."""

    kind = ErrorKind.INVALID_INPUT


class ProvingFailed(ZKPassError):
    """The proving backend errored, timed out or returned a malformed proof."""

    kind = ErrorKind.PROVING_FAILED


class VerificationFailed(ZKPassError):
    """The verifying backend errored, timed out or the key could not be used."""

    kind = ErrorKind.VERIFICATION_FAILED


class StoreError(ZKPassError):
    """Transient persistence failure. Safe to replay the whole operation."""

    kind = ErrorKind.STORE_ERROR


class IdentityExists(StoreError):
    """The store already holds a record for this identity."""

    kind = ErrorKind.DUPLICATE_IDENTITY

    def __init__(self, identity: str) -> None:
        super().__init__(f"Identity '{identity}' already exists")
        self.identity = identity


class CircuitMisconfigured(RuntimeError):
    """The circuit's committed output disagrees with the host commitment.

    This is a deployment problem (wrong artifacts or Poseidon parameters),
    not a per-request failure, so it is never folded into a result.
    """


__all__ = [
    "CircuitMisconfigured",
    "ErrorKind",
    "IdentityExists",
    "InvalidInput",
    "ProvingFailed",
    "StoreError",
    "VerificationFailed",
    "ZKPassError",
]
