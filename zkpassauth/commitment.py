"""Identity-bound password commitments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .constants import CIRCUIT_IDENTITY_SIGNAL, CIRCUIT_SECRET_SIGNAL
from .errors import InvalidInput
from .field import (
    FieldElement,
    encode,
    is_field_element,
    parse_decimal,
    require_identity,
    require_text,
    to_decimal,
)
from .poseidon import PoseidonParams, default_params, poseidon_hash


@dataclass(frozen=True)
class Witness:
    """Private circuit input: the encoded identity and the encoded secret."""

    identity: FieldElement
    secret: FieldElement

    @staticmethod
    def build(identity: str, secret: str) -> "Witness":
        require_identity(identity)
        require_text("secret", secret)
        return Witness(identity=encode(identity), secret=encode(secret))

    def is_reduced(self) -> bool:
        return is_field_element(self.identity) and is_field_element(self.secret)

    def to_circuit_input(self) -> Dict[str, str]:
        return {
            CIRCUIT_IDENTITY_SIGNAL: to_decimal(self.identity),
            CIRCUIT_SECRET_SIGNAL: to_decimal(self.secret),
        }


@dataclass(frozen=True)
class Commitment:
    """Commitment stored in place of a password.

    Two commitments are equal iff their canonical decimal strings are equal.
    """

    value: FieldElement

    def __post_init__(self) -> None:
        if not is_field_element(self.value):
            raise InvalidInput("Commitment must be a reduced field element")

    @property
    def decimal(self) -> str:
        return str(self.value)

    def __str__(self) -> str:
        return self.decimal

    @staticmethod
    def parse(text: object) -> "Commitment":
        return Commitment(parse_decimal(text))


class CommitmentScheme:
    """Poseidon over (identity, secret) with a fixed parameter set."""

    def __init__(self, params: PoseidonParams | None = None) -> None:
        self.params = params or default_params()
        if self.params.t != 3:
            raise ValueError("Commitment scheme needs a width-3 (two input) Poseidon")

    def commit(self, witness: Witness) -> Commitment:
        if not witness.is_reduced():
            raise InvalidInput("Witness must be reduced into the field")
        return Commitment(poseidon_hash([witness.identity, witness.secret], self.params))


__all__ = ["Commitment", "CommitmentScheme", "Witness"]
