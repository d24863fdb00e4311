import os
import tempfile
import threading
import unittest

from zkpassauth.errors import IdentityExists, StoreError
from zkpassauth.store import IdentityRecord, JsonIdentityStore, SqliteIdentityStore, open_store


class StoreContract:
    """Behaviour shared by every identity store implementation."""

    def make_store(self, path: str):
        raise NotImplementedError

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "identities")
        self.store = self.make_store(self.path)
        self.store.open()

    def tearDown(self) -> None:
        self.store.close()
        self._tmp.cleanup()

    def test_create_and_find(self) -> None:
        record = self.store.create_record("alice", "12345")
        self.assertEqual(record, IdentityRecord(identity="alice", commitment="12345"))
        self.assertEqual(self.store.find_record("alice"), record)
        self.assertIsNone(self.store.find_record("bob"))

    def test_duplicate_identity_keeps_first_record(self) -> None:
        self.store.create_record("alice", "111")
        with self.assertRaises(IdentityExists) as ctx:
            self.store.create_record("alice", "222")
        self.assertEqual(ctx.exception.identity, "alice")
        self.assertIsInstance(ctx.exception, StoreError)
        self.assertEqual(self.store.find_record("alice").commitment, "111")

    def test_records_survive_reopen(self) -> None:
        self.store.create_record("alice", "111")
        self.store.close()
        with self.make_store(self.path) as reopened:
            self.assertEqual(reopened.find_record("alice").commitment, "111")

    def test_closed_store_raises(self) -> None:
        self.store.close()
        with self.assertRaises(StoreError):
            self.store.find_record("alice")
        with self.assertRaises(StoreError):
            self.store.create_record("alice", "1")

    def test_concurrent_create_single_winner(self) -> None:
        outcomes = []
        barrier = threading.Barrier(8)

        def attempt(i: int) -> None:
            barrier.wait()
            try:
                self.store.create_record("alice", str(i))
                outcomes.append("ok")
            except IdentityExists:
                outcomes.append("exists")

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(outcomes.count("ok"), 1)
        self.assertEqual(outcomes.count("exists"), 7)


class TestSqliteIdentityStore(StoreContract, unittest.TestCase):
    def make_store(self, path: str):
        return SqliteIdentityStore(path + ".db")


class TestJsonIdentityStore(StoreContract, unittest.TestCase):
    def make_store(self, path: str):
        return JsonIdentityStore(path + ".json")

    def test_malformed_document_is_store_error(self) -> None:
        with open(self.store.path, "w", encoding="utf-8") as handle:
            handle.write("[1, 2")
        with self.assertRaises(StoreError):
            self.store.find_record("alice")


class TestOpenStore(unittest.TestCase):
    def test_urls(self) -> None:
        self.assertIsInstance(open_store("sqlite:///ids.db"), SqliteIdentityStore)
        self.assertEqual(open_store("sqlite:///ids.db").path, "ids.db")
        self.assertIsInstance(open_store("json:///users.json"), JsonIdentityStore)
        self.assertEqual(open_store("memory://").path, ":memory:")

    def test_bad_urls(self) -> None:
        for url in ("postgres://db", "sqlite:///", "users.json"):
            with self.assertRaises(ValueError):
                open_store(url)


if __name__ == "__main__":
    unittest.main()
