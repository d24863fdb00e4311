import json
import os
import tempfile
import unittest

from zkpassauth.commitment import Commitment, CommitmentScheme, Witness
from zkpassauth.constants import FIELD_PRIME
from zkpassauth.errors import InvalidInput
from zkpassauth.field import encode
from zkpassauth.poseidon import PoseidonParams, default_params, generate_params, load_params_json, poseidon_hash


class TestPoseidon(unittest.TestCase):
    def test_default_params_shape(self) -> None:
        params = default_params()
        self.assertEqual((params.t, params.R_F, params.R_P, params.alpha), (3, 8, 57, 5))
        self.assertEqual(len(params.rc), 65)
        params.validate()
        self.assertIs(default_params(), params)

    def test_generation_is_deterministic(self) -> None:
        self.assertEqual(generate_params(3, 8, 57), default_params())
        self.assertNotEqual(generate_params(3, 8, 56).rc[0], default_params().rc[0])

    def test_hash_is_deterministic_and_input_sensitive(self) -> None:
        h = poseidon_hash([1, 2])
        self.assertEqual(h, poseidon_hash([1, 2]))
        self.assertNotEqual(h, poseidon_hash([2, 1]))
        self.assertNotEqual(h, poseidon_hash([1, 3]))
        self.assertTrue(0 <= h < FIELD_PRIME)

    def test_matches_circomlib_known_answers(self) -> None:
        # Reference values from circomlibjs / poseidon-lite poseidon2.
        params = default_params()
        self.assertEqual(
            params.rc[0][0], 0x0EE9A592BA9A9518D05986D656F40C2114C4993C11BB29938D21D47304CD8E6E
        )
        self.assertEqual(
            poseidon_hash([1, 2]),
            7853200120776062878684798364095072458815029376092732009249414926327459813530,
        )

    def test_rejects_bad_inputs(self) -> None:
        with self.assertRaises(ValueError):
            poseidon_hash([1])
        with self.assertRaises(ValueError):
            poseidon_hash([1, FIELD_PRIME])
        with self.assertRaises(ValueError):
            poseidon_hash([-1, 0])

    def test_invalid_params_rejected(self) -> None:
        params = default_params()
        broken = PoseidonParams(t=3, R_F=8, R_P=56, alpha=5, mds=params.mds, rc=params.rc)
        with self.assertRaises(ValueError):
            broken.validate()

    def test_load_params_from_circuit_file(self) -> None:
        params = default_params()
        raw = {
            "t": params.t,
            "R_F": params.R_F,
            "R_P": params.R_P,
            "mds": [[hex(value) for value in row] for row in params.mds],
            "rc": [[str(value) for value in row] for row in params.rc],
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "poseidon.json")
            with open(path, "w", encoding="utf-8") as handle:
                json.dump(raw, handle)
            self.assertEqual(load_params_json(path), params)


class TestCommitment(unittest.TestCase):
    def setUp(self) -> None:
        self.scheme = CommitmentScheme()

    def test_commitment_matches_poseidon_of_encoded_pair(self) -> None:
        witness = Witness.build("alice", "p@ss1")
        self.assertEqual(witness, Witness(identity=encode("alice"), secret=encode("p@ss1")))
        expected = poseidon_hash([encode("alice"), encode("p@ss1")])
        self.assertEqual(self.scheme.commit(witness).value, expected)

    def test_no_collisions_over_many_secrets(self) -> None:
        seen = set()
        for i in range(200):
            seen.add(self.scheme.commit(Witness.build("alice", f"secret-{i}")).decimal)
        self.assertEqual(len(seen), 200)

    def test_bound_to_identity(self) -> None:
        alice = self.scheme.commit(Witness.build("alice", "hunter2"))
        bob = self.scheme.commit(Witness.build("bob", "hunter2"))
        self.assertNotEqual(alice, bob)

    def test_empty_values_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            Witness.build("alice", "")
        with self.assertRaises(InvalidInput):
            Witness.build("", "p@ss1")

    def test_unreduced_witness_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            self.scheme.commit(Witness(identity=1, secret=FIELD_PRIME))

    def test_canonical_decimal(self) -> None:
        commitment = Commitment(1234)
        self.assertEqual(str(commitment), "1234")
        self.assertEqual(Commitment.parse("1234"), commitment)
        with self.assertRaises(InvalidInput):
            Commitment.parse("01234")
        with self.assertRaises(InvalidInput):
            Commitment(FIELD_PRIME)

    def test_circuit_input_uses_decimal_strings(self) -> None:
        witness = Witness(identity=7, secret=11)
        self.assertEqual(witness.to_circuit_input(), {"identity": "7", "secret": "11"})

    def test_scheme_requires_two_inputs(self) -> None:
        with self.assertRaises(ValueError):
            CommitmentScheme(generate_params(4, 8, 56))


if __name__ == "__main__":
    unittest.main()
