"""Password authentication with zero-knowledge proofs of a stored commitment."""

from .auth import AuthResult, AuthState, Authenticator, EnrollResult, EnrollState, build_authenticator
from .backend import (
    BackendError,
    CircuitArtifacts,
    ProofBundle,
    ProvingBackend,
    SnarkjsBackend,
    VerificationKey,
    load_verification_key,
)
from .commitment import Commitment, CommitmentScheme, Witness
from .config import Settings
from .errors import (
    CircuitMisconfigured,
    ErrorKind,
    IdentityExists,
    InvalidInput,
    ProvingFailed,
    StoreError,
    VerificationFailed,
    ZKPassError,
)
from .field import encode
from .prover import ProofProducer
from .store import IdentityRecord, IdentityStore, JsonIdentityStore, SqliteIdentityStore, open_store
from .verifier import ProofVerifier, VerificationResult

__all__ = [
    "AuthResult",
    "AuthState",
    "Authenticator",
    "BackendError",
    "CircuitArtifacts",
    "CircuitMisconfigured",
    "Commitment",
    "CommitmentScheme",
    "EnrollResult",
    "EnrollState",
    "ErrorKind",
    "IdentityExists",
    "IdentityRecord",
    "IdentityStore",
    "InvalidInput",
    "JsonIdentityStore",
    "ProofBundle",
    "ProofProducer",
    "ProofVerifier",
    "ProvingBackend",
    "ProvingFailed",
    "Settings",
    "SnarkjsBackend",
    "SqliteIdentityStore",
    "StoreError",
    "VerificationFailed",
    "VerificationKey",
    "VerificationResult",
    "Witness",
    "ZKPassError",
    "build_authenticator",
    "encode",
    "load_verification_key",
    "open_store",
]
