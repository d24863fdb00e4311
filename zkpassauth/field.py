"""Encoding of secrets and identities as BN254 scalar field elements."""

from __future__ import annotations

import re

from .constants import FIELD_PRIME, MAX_IDENTITY_BYTES
from .errors import InvalidInput

FieldElement = int

_CANONICAL_DECIMAL = re.compile(r"0|[1-9][0-9]*")


def encode(value: str) -> FieldElement:
    """Map text to a field element.

    The UTF-8 bytes are read as a big-endian integer and reduced modulo the
    field prime, so ``"0123"`` and ``"123"`` encode differently and nothing
    depends on whether the text looks numeric. The empty string maps to 0.
    """

    return int.from_bytes(value.encode("utf-8"), "big") % FIELD_PRIME


def is_field_element(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < FIELD_PRIME


def to_decimal(value: FieldElement) -> str:
    if not is_field_element(value):
        raise InvalidInput("Value is not a reduced field element")
    return str(value)


def is_canonical_decimal(text: object) -> bool:
    if not isinstance(text, str) or _CANONICAL_DECIMAL.fullmatch(text) is None:
        return False
    return int(text) < FIELD_PRIME


def parse_decimal(text: object) -> FieldElement:
    """Parse a canonical decimal string (no sign, radix prefix or leading zeros)."""

    if not is_canonical_decimal(text):
        raise InvalidInput("Expected a canonical decimal field element")
    return int(text)  # type: ignore[arg-type]


def require_text(name: str, value: object) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidInput(f"{name} must be a non-empty string")
    return value


def require_identity(value: object) -> str:
    """Accept only identities that ``encode`` maps injectively.

    Up to MAX_IDENTITY_BYTES bytes the integer is below the field prime, so
    no reduction happens; NUL is rejected because leading zero bytes vanish.
    """

    identity = require_text("identity", value)
    if "\x00" in identity:
        raise InvalidInput("identity must not contain NUL characters")
    if len(identity.encode("utf-8")) > MAX_IDENTITY_BYTES:
        raise InvalidInput(f"identity must be at most {MAX_IDENTITY_BYTES} bytes of UTF-8")
    return identity


__all__ = [
    "FieldElement",
    "encode",
    "is_canonical_decimal",
    "is_field_element",
    "parse_decimal",
    "require_identity",
    "require_text",
    "to_decimal",
]
