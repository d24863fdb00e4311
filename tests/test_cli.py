import contextlib
import io
import os
import tempfile
import unittest
from unittest import mock

import zkpass_auth


class TestCli(unittest.TestCase):
    def test_parse_enroll(self) -> None:
        namespace = zkpass_auth.parse_args(
            ["--store", "memory://", "enroll", "alice", "p@ss1", "--proof-out", "proof.json"]
        )
        self.assertEqual(namespace.command, "enroll")
        self.assertEqual(namespace.identity, "alice")
        self.assertEqual(namespace.secret, "p@ss1")
        self.assertEqual(namespace.proof_out, "proof.json")
        self.assertEqual(namespace.store, "memory://")

    def test_parse_serve(self) -> None:
        namespace = zkpass_auth.parse_args(["serve", "--port", "9001"])
        self.assertEqual(namespace.port, 9001)
        self.assertIsNone(namespace.host)

    def test_missing_verification_key_reports_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = os.path.join(tmp, "verification_key.json")
            stderr = io.StringIO()
            with mock.patch.dict(os.environ, {"ZKPASS_VERIFICATION_KEY": missing}):
                with contextlib.redirect_stderr(stderr):
                    code = zkpass_auth.main(["--store", "memory://", "enroll", "alice", "p@ss1"])
        self.assertEqual(code, 1)
        self.assertIn("verification key", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
