"""Poseidon hash over the BN254 scalar field.

The permutation is parameterised by the state width ``t``, the number of
full and partial rounds, the S-box exponent, the MDS matrix and the round
constants. The circuit and the host must use the same parameter set, so a
parameter file exported from the circuit tooling can be loaded with
:func:`load_params_json`. Without one, :func:`default_params` derives the
constants with the Grain LFSR procedure from the Poseidon reference
(rejection-sampled round constants followed by a Cauchy MDS matrix).

JSON schema::

    {"t": 3, "R_F": 8, "R_P": 57, "alpha": 5,
     "mds": [[...t values...], ...],
     "rc": [[...t values...], ... R_F + R_P rows ...]}

Values may be decimal or ``0x``-prefixed hex strings, or JSON numbers.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Sequence, Tuple, Union

from .constants import (
    FIELD_PRIME,
    POSEIDON_ALPHA,
    POSEIDON_FULL_ROUNDS,
    POSEIDON_PARTIAL_ROUNDS,
    POSEIDON_WIDTH,
)

_FIELD_BITS = FIELD_PRIME.bit_length()


@dataclass(frozen=True)
class PoseidonParams:
    t: int
    R_F: int
    R_P: int
    alpha: int
    mds: Tuple[Tuple[int, ...], ...]
    rc: Tuple[Tuple[int, ...], ...]

    def validate(self) -> None:
        if self.t < 2:
            raise ValueError("t must be >= 2")
        if self.R_F % 2 != 0:
            raise ValueError("R_F must be even")
        if self.alpha < 3 or self.alpha % 2 == 0:
            raise ValueError("alpha must be an odd integer >= 3")
        if len(self.mds) != self.t or any(len(row) != self.t for row in self.mds):
            raise ValueError("mds must be t x t")
        rounds = self.R_F + self.R_P
        if len(self.rc) != rounds or any(len(row) != self.t for row in self.rc):
            raise ValueError(f"rc must be (R_F+R_P) x t = {rounds} x {self.t}")
        for row in self.mds + self.rc:
            if any(not 0 <= value < FIELD_PRIME for value in row):
                raise ValueError("Parameter values must be reduced field elements")


def _grain_bits(t: int, R_F: int, R_P: int) -> Iterator[int]:
    # Initial state: field type (prime), S-box type (x^alpha), field size,
    # width and round numbers, padded with ones to 80 bits.
    seed = (
        format(1, "02b")
        + format(0, "04b")
        + format(_FIELD_BITS, "012b")
        + format(t, "012b")
        + format(R_F, "010b")
        + format(R_P, "010b")
        + "1" * 30
    )
    state = deque(int(bit) for bit in seed)

    def step() -> int:
        bit = state[62] ^ state[51] ^ state[38] ^ state[23] ^ state[13] ^ state[0]
        state.popleft()
        state.append(bit)
        return bit

    for _ in range(160):
        step()

    while True:
        # Self-shrinking: emit the second bit of each pair whose first bit is 1.
        first = step()
        while first == 0:
            step()
            first = step()
        yield step()


def _next_int(bits: Iterator[int]) -> int:
    value = 0
    for _ in range(_FIELD_BITS):
        value = (value << 1) | next(bits)
    return value


def _next_field_element(bits: Iterator[int]) -> int:
    while True:
        value = _next_int(bits)
        if value < FIELD_PRIME:
            return value


def generate_params(t: int, R_F: int, R_P: int, alpha: int = POSEIDON_ALPHA) -> PoseidonParams:
    bits = _grain_bits(t, R_F, R_P)
    flat = [_next_field_element(bits) for _ in range((R_F + R_P) * t)]
    rc = tuple(tuple(flat[r * t:(r + 1) * t]) for r in range(R_F + R_P))

    while True:
        points = [_next_int(bits) % FIELD_PRIME for _ in range(2 * t)]
        if len(set(points)) == len(points):
            break
    xs, ys = points[:t], points[t:]
    mds = tuple(
        tuple(pow((x + y) % FIELD_PRIME, -1, FIELD_PRIME) for y in ys)
        for x in xs
    )

    params = PoseidonParams(t=t, R_F=R_F, R_P=R_P, alpha=alpha, mds=mds, rc=rc)
    params.validate()
    return params


@lru_cache(maxsize=None)
def default_params() -> PoseidonParams:
    return generate_params(POSEIDON_WIDTH, POSEIDON_FULL_ROUNDS, POSEIDON_PARTIAL_ROUNDS)


def _to_int(value: Union[int, str]) -> int:
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip().lower()
        number = int(text, 16) if text.startswith("0x") else int(text)
    if not 0 <= number < FIELD_PRIME:
        raise ValueError("Parameter value outside the field")
    return number


def load_params_json(path: str) -> PoseidonParams:
    with open(path, "r", encoding="utf-8") as handle:
        raw = json.load(handle)
    params = PoseidonParams(
        t=int(raw["t"]),
        R_F=int(raw["R_F"]),
        R_P=int(raw["R_P"]),
        alpha=int(raw.get("alpha", POSEIDON_ALPHA)),
        mds=tuple(tuple(_to_int(value) for value in row) for row in raw["mds"]),
        rc=tuple(tuple(_to_int(value) for value in row) for row in raw["rc"]),
    )
    params.validate()
    return params


def permute(state: Sequence[int], params: PoseidonParams) -> List[int]:
    """Apply the Poseidon permutation, returning a new state."""

    t = params.t
    if len(state) != t:
        raise ValueError(f"state length {len(state)} != t={t}")
    x = list(state)
    half = params.R_F // 2
    for r, constants in enumerate(params.rc):
        x = [(value + c) % FIELD_PRIME for value, c in zip(x, constants)]
        if r < half or r >= half + params.R_P:
            x = [pow(value, params.alpha, FIELD_PRIME) for value in x]
        else:
            x[0] = pow(x[0], params.alpha, FIELD_PRIME)
        x = [
            sum(m * value for m, value in zip(row, x)) % FIELD_PRIME
            for row in params.mds
        ]
    return x


def poseidon_hash(inputs: Sequence[int], params: PoseidonParams | None = None) -> int:
    """Circom-style one-shot hash: capacity element 0, then the inputs."""

    params = params or default_params()
    if len(inputs) != params.t - 1:
        raise ValueError(f"Expected {params.t - 1} inputs, got {len(inputs)}")
    for value in inputs:
        if not isinstance(value, int) or not 0 <= value < FIELD_PRIME:
            raise ValueError("Poseidon inputs must be reduced field elements")
    return permute([0, *inputs], params)[0]


__all__ = [
    "PoseidonParams",
    "default_params",
    "generate_params",
    "load_params_json",
    "permute",
    "poseidon_hash",
]
