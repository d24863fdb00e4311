"""Create-once identity records backed by SQLite or a JSON file."""

from __future__ import annotations

import abc
import json
import logging
import os
import sqlite3
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import IdentityExists, StoreError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityRecord:
    """Stored identity and the canonical decimal string of its commitment."""

    identity: str
    commitment: str

    def to_dict(self) -> Dict[str, str]:
        return {"identity": self.identity, "commitment": self.commitment}

    @staticmethod
    def from_dict(data: Dict[str, str]) -> "IdentityRecord":
        return IdentityRecord(identity=data["identity"], commitment=data["commitment"])


class IdentityStore(abc.ABC):
    """Keyed record store; uniqueness of identity is enforced by the backend."""

    def __enter__(self) -> "IdentityStore":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @abc.abstractmethod
    def open(self) -> None: ...

    @abc.abstractmethod
    def close(self) -> None: ...

    @abc.abstractmethod
    def create_record(self, identity: str, commitment: str) -> IdentityRecord:
        """Insert a record, raising :class:`IdentityExists` if one is present."""

    @abc.abstractmethod
    def find_record(self, identity: str) -> Optional[IdentityRecord]: ...


class SqliteIdentityStore(IdentityStore):
    _SCHEMA = (
        "CREATE TABLE IF NOT EXISTS identities ("
        " identity TEXT PRIMARY KEY NOT NULL,"
        " commitment TEXT NOT NULL)"
    )

    def __init__(self, path: str) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def open(self) -> None:
        if self._conn is not None:
            return
        try:
            conn = sqlite3.connect(self.path, timeout=30, isolation_level=None, check_same_thread=False)
            conn.execute(self._SCHEMA)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open identity store {self.path}: {exc}") from exc
        self._conn = conn
        log.debug("opened sqlite identity store at %s", self.path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Identity store is not open")
        return self._conn

    def create_record(self, identity: str, commitment: str) -> IdentityRecord:
        conn = self._connection()
        try:
            with self._lock:
                conn.execute(
                    "INSERT INTO identities (identity, commitment) VALUES (?, ?)",
                    (identity, commitment),
                )
        except sqlite3.IntegrityError as exc:
            raise IdentityExists(identity) from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Could not store identity: {exc}") from exc
        return IdentityRecord(identity=identity, commitment=commitment)

    def find_record(self, identity: str) -> Optional[IdentityRecord]:
        conn = self._connection()
        try:
            with self._lock:
                row = conn.execute(
                    "SELECT identity, commitment FROM identities WHERE identity = ?",
                    (identity,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Could not read identity: {exc}") from exc
        if row is None:
            return None
        return IdentityRecord(identity=row[0], commitment=row[1])


class JsonIdentityStore(IdentityStore):
    """Single JSON document; suitable for one process at a time."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._opened = False

    def open(self) -> None:
        try:
            if not os.path.exists(self.path):
                self._save({"identities": []})
            self._load()
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not open identity store {self.path}: {exc}") from exc
        self._opened = True

    def close(self) -> None:
        self._opened = False

    def _load(self) -> Dict[str, List[Dict[str, str]]]:
        with open(self.path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict) or not isinstance(payload.get("identities", []), list):
            raise ValueError("identity store document is malformed")
        return payload

    def _save(self, payload: Dict[str, List[Dict[str, str]]]) -> None:
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(tmp_path, self.path)

    def _check_open(self) -> None:
        if not self._opened:
            raise StoreError("Identity store is not open")

    def create_record(self, identity: str, commitment: str) -> IdentityRecord:
        self._check_open()
        record = IdentityRecord(identity=identity, commitment=commitment)
        with self._lock:
            try:
                payload = self._load()
                users = payload.setdefault("identities", [])
                if any(raw.get("identity") == identity for raw in users):
                    raise IdentityExists(identity)
                users.append(record.to_dict())
                self._save(payload)
            except (OSError, ValueError) as exc:
                raise StoreError(f"Could not store identity: {exc}") from exc
        return record

    def find_record(self, identity: str) -> Optional[IdentityRecord]:
        self._check_open()
        with self._lock:
            try:
                payload = self._load()
            except (OSError, ValueError) as exc:
                raise StoreError(f"Could not read identity: {exc}") from exc
        for raw in payload.get("identities", []):
            if raw.get("identity") == identity:
                return IdentityRecord.from_dict(raw)
        return None


def open_store(url: str) -> IdentityStore:
    """Build (but do not open) a store from ``sqlite:///path``, ``json:///path`` or ``memory://``."""

    if url == "memory://":
        return SqliteIdentityStore(":memory:")
    for scheme, factory in (("sqlite:///", SqliteIdentityStore), ("json:///", JsonIdentityStore)):
        if url.startswith(scheme):
            path = url[len(scheme):]
            if not path:
                raise ValueError(f"Store URL '{url}' has no path")
            return factory(path)
    raise ValueError(f"Unsupported store URL '{url}'")


__all__ = [
    "IdentityRecord",
    "IdentityStore",
    "JsonIdentityStore",
    "SqliteIdentityStore",
    "open_store",
]
