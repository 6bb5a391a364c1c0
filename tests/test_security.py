"""Unit tests for password/PIN hashing and secure password generation."""

import unittest

from app.core.security import (
    PASSWORD_DIGITS,
    PASSWORD_LOWERCASE,
    PASSWORD_SYMBOLS,
    PASSWORD_UPPERCASE,
    generate_secure_password,
    generate_session_token,
    hash_password,
    hash_pin,
    is_valid_pin,
    verify_password,
)

PIN_12345678_SHA256 = "ef797c8118f02dfb649607dd5d3f8c7623048c9c063d532cc95c5ed7a898a64f"


class TestPasswordHashing(unittest.TestCase):
    def test_verify_roundtrip_and_mismatch(self) -> None:
        hashed = hash_password("correct horse battery")
        self.assertNotEqual(hashed, "correct horse battery")
        self.assertTrue(verify_password("correct horse battery", hashed))
        self.assertFalse(verify_password("wrong password", hashed))

    def test_garbage_hash_is_false_not_error(self) -> None:
        self.assertFalse(verify_password("anything", "not-a-bcrypt-hash"))


class TestPin(unittest.TestCase):
    def test_hash_pin_is_plain_sha256_hex(self) -> None:
        self.assertEqual(hash_pin("12345678"), PIN_12345678_SHA256)

    def test_valid_pin_shapes(self) -> None:
        self.assertTrue(is_valid_pin("00000000"))
        self.assertFalse(is_valid_pin("1234567"))
        self.assertFalse(is_valid_pin("123456789"))
        self.assertFalse(is_valid_pin("1234abcd"))
        self.assertFalse(is_valid_pin(12345678))
        self.assertFalse(is_valid_pin(None))
        self.assertFalse(is_valid_pin("1234567\n"))


class TestGenerateSecurePassword(unittest.TestCase):
    def test_default_length_and_classes(self) -> None:
        password = generate_secure_password()
        self.assertEqual(len(password), 32)
        self.assertTrue(any(c in PASSWORD_UPPERCASE for c in password))
        self.assertTrue(any(c in PASSWORD_LOWERCASE for c in password))
        self.assertTrue(any(c in PASSWORD_DIGITS for c in password))
        self.assertTrue(any(c in PASSWORD_SYMBOLS for c in password))

    def test_minimum_length_still_has_every_class(self) -> None:
        for _ in range(20):
            password = generate_secure_password(4)
            self.assertEqual(len(password), 4)
            self.assertTrue(any(c in PASSWORD_SYMBOLS for c in password))
            self.assertTrue(any(c in PASSWORD_DIGITS for c in password))

    def test_out_of_range_raises(self) -> None:
        with self.assertRaises(ValueError):
            generate_secure_password(3)
        with self.assertRaises(ValueError):
            generate_secure_password(257)

    def test_session_tokens_are_unique_hex(self) -> None:
        a, b = generate_session_token(), generate_session_token()
        self.assertNotEqual(a, b)
        self.assertEqual(len(a), 64)
        int(a, 16)
