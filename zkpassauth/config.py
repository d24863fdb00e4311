"""Runtime configuration.

Every field has a default and can be overridden through the environment:

  ZKPASS_STORE=sqlite:///identities.db     # or json:///users.json, memory://
  ZKPASS_CIRCUIT_WASM=circuit.wasm
  ZKPASS_CIRCUIT_ZKEY=circuit_0000.zkey
  ZKPASS_VERIFICATION_KEY=verification_key.json
  ZKPASS_POSEIDON_PARAMS=                  # optional circuit parameter JSON
  ZKPASS_SNARKJS=snarkjs
  ZKPASS_PROVE_TIMEOUT=60                  # seconds
  ZKPASS_VERIFY_TIMEOUT=10                 # seconds
  ZKPASS_SELF_CHECK=1                      # verify fresh proofs before storing
  ZKPASS_LOG_LEVEL=INFO
  ZKPASS_HOST=127.0.0.1
  ZKPASS_PORT=8000
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from .constants import (
    DEFAULT_CIRCUIT_WASM,
    DEFAULT_CIRCUIT_ZKEY,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_PROVE_TIMEOUT,
    DEFAULT_SNARKJS,
    DEFAULT_STORE,
    DEFAULT_VERIFICATION_KEY,
    DEFAULT_VERIFY_TIMEOUT,
)

_PREFIX = "ZKPASS_"


def _getenv(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(_PREFIX + key)
    return value if value is not None and value.strip() != "" else None


def _getenv_float(env: Mapping[str, str], key: str, default: float) -> float:
    value = _getenv(env, key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid number for {_PREFIX}{key}: {value!r}") from exc


def _getenv_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = _getenv(env, key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid int for {_PREFIX}{key}: {value!r}") from exc


def _getenv_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = _getenv(env, key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    store: str = DEFAULT_STORE
    circuit_wasm: str = DEFAULT_CIRCUIT_WASM
    circuit_zkey: str = DEFAULT_CIRCUIT_ZKEY
    verification_key: str = DEFAULT_VERIFICATION_KEY
    poseidon_params: Optional[str] = None
    snarkjs: str = DEFAULT_SNARKJS
    prove_timeout: float = DEFAULT_PROVE_TIMEOUT
    verify_timeout: float = DEFAULT_VERIFY_TIMEOUT
    self_check: bool = True
    log_level: str = "INFO"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        settings = cls(
            store=_getenv(env, "STORE") or DEFAULT_STORE,
            circuit_wasm=_getenv(env, "CIRCUIT_WASM") or DEFAULT_CIRCUIT_WASM,
            circuit_zkey=_getenv(env, "CIRCUIT_ZKEY") or DEFAULT_CIRCUIT_ZKEY,
            verification_key=_getenv(env, "VERIFICATION_KEY") or DEFAULT_VERIFICATION_KEY,
            poseidon_params=_getenv(env, "POSEIDON_PARAMS"),
            snarkjs=_getenv(env, "SNARKJS") or DEFAULT_SNARKJS,
            prove_timeout=_getenv_float(env, "PROVE_TIMEOUT", DEFAULT_PROVE_TIMEOUT),
            verify_timeout=_getenv_float(env, "VERIFY_TIMEOUT", DEFAULT_VERIFY_TIMEOUT),
            self_check=_getenv_flag(env, "SELF_CHECK", True),
            log_level=(_getenv(env, "LOG_LEVEL") or "INFO").upper(),
            host=_getenv(env, "HOST") or DEFAULT_HOST,
            port=_getenv_int(env, "PORT", DEFAULT_PORT),
        )
        settings.validate()
        return settings

    def override(self, **changes: Any) -> "Settings":
        """Return a copy with the non-None ``changes`` applied."""

        updated = replace(self, **{key: value for key, value in changes.items() if value is not None})
        updated.validate()
        return updated

    def validate(self) -> None:
        if self.prove_timeout <= 0 or self.verify_timeout <= 0:
            raise ValueError("Timeouts must be positive")
        if not 0 < self.port < 65536:
            raise ValueError("port must be in 1..65535")
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {self.log_level!r}")


__all__ = ["Settings"]
