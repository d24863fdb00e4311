"""Protocol-wide constants for the password commitment scheme."""

from __future__ import annotations

# BN254 (bn128 in snarkjs) scalar field order.
FIELD_PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# Poseidon parameters used by the circuit (circomlib, width 3 = two inputs).
POSEIDON_WIDTH = 3
POSEIDON_FULL_ROUNDS = 8
POSEIDON_PARTIAL_ROUNDS = 57
POSEIDON_ALPHA = 5

# Circuit contract: input signal names and position of the commitment
# in the public outputs.
CIRCUIT_IDENTITY_SIGNAL = "identity"
CIRCUIT_SECRET_SIGNAL = "secret"
COMMITMENT_INDEX = 0

DEFAULT_STORE = "sqlite:///identities.db"
DEFAULT_CIRCUIT_WASM = "circuit.wasm"
DEFAULT_CIRCUIT_ZKEY = "circuit_0000.zkey"
DEFAULT_VERIFICATION_KEY = "verification_key.json"
DEFAULT_SNARKJS = "snarkjs"

# Seconds.
DEFAULT_PROVE_TIMEOUT = 60.0
DEFAULT_VERIFY_TIMEOUT = 10.0

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

# 256**31 < FIELD_PRIME, so identities up to this length encode without reduction.
MAX_IDENTITY_BYTES = 31
