"""Tests for bcrypt password hashing."""

from __future__ import annotations

import unittest

from eventreg.errors import ValidationError
from eventreg.security import PasswordHasher


class PasswordHashingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.hasher = PasswordHasher(rounds=4)

    def test_hash_is_salted_and_never_plaintext(self) -> None:
        first = self.hasher.hash("pw123")
        second = self.hasher.hash("pw123")

        self.assertNotEqual(first, "pw123")
        self.assertNotEqual(first, second)
        self.assertTrue(first.startswith("$2b$04$"))

    def test_verify_accepts_only_the_original_password(self) -> None:
        hashed = self.hasher.hash("supersecurepassword")

        self.assertTrue(self.hasher.verify("supersecurepassword", hashed))
        self.assertFalse(self.hasher.verify("incorrect", hashed))

    def test_verify_rejects_malformed_hashes(self) -> None:
        self.assertFalse(self.hasher.verify("anything", ""))
        self.assertFalse(self.hasher.verify("anything", "not-a-bcrypt-hash"))

    def test_nul_byte_in_password_is_a_validation_error(self) -> None:
        with self.assertRaises(ValidationError):
            self.hasher.hash("pw\x00x")
        self.assertFalse(self.hasher.verify("pw\x00x", self.hasher.hash("pw")))

    def test_empty_password_cannot_be_hashed(self) -> None:
        with self.assertRaises(ValueError):
            self.hasher.hash("")

    def test_default_work_factor_is_twelve(self) -> None:
        hashed = PasswordHasher().hash("pw123")
        self.assertTrue(hashed.startswith("$2b$12$"))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
