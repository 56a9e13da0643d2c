"""
Unit tests for the password gate
"""

import hashlib
import unittest
from unittest.mock import patch

from commission_bot.services import auth


class TestPasswords(unittest.TestCase):

    def test_hash_password_is_salted_sha256(self):
        expected = hashlib.sha256("secreto".encode("utf-8") + b"commission_salt_v1").hexdigest()
        self.assertEqual(auth.hash_password("secreto", "commission_salt_v1"), expected)

    def test_validate_new_password(self):
        self.assertIsNotNone(auth.validate_new_password("abc", "abc"))
        self.assertEqual(auth.validate_new_password("abcd", "abce"), "Las contraseñas no coinciden")
        self.assertIsNone(auth.validate_new_password("abcd", "abcd"))

    @patch('commission_bot.services.auth.sheets')
    def test_check_password(self, mock_sheets):
        mock_sheets.get_password_hash.return_value = auth.hash_password("secreto")

        self.assertTrue(auth.check_password("secreto"))
        self.assertFalse(auth.check_password("otro"))

    @patch('commission_bot.services.auth.sheets')
    def test_check_password_uses_constant_time_compare(self, mock_sheets):
        mock_sheets.get_password_hash.return_value = auth.hash_password("secreto")

        with patch.object(auth.hmac, 'compare_digest', wraps=auth.hmac.compare_digest) as mock_compare:
            self.assertTrue(auth.check_password("secreto"))

        mock_compare.assert_called_once()

    @patch('commission_bot.services.auth.sheets')
    def test_check_password_without_setup_raises(self, mock_sheets):
        mock_sheets.get_password_hash.return_value = None

        with self.assertRaises(LookupError):
            auth.check_password("secreto")

    @patch('commission_bot.services.auth.sheets')
    def test_setup_password_stores_hash(self, mock_sheets):
        auth.setup_password("secreto")

        mock_sheets.set_password_hash.assert_called_once_with(auth.hash_password("secreto"))

    @patch('commission_bot.services.auth.sheets')
    def test_has_password(self, mock_sheets):
        mock_sheets.get_password_hash.return_value = ""
        self.assertFalse(auth.has_password())

        mock_sheets.get_password_hash.return_value = "abc123"
        self.assertTrue(auth.has_password())


class TestSessionGate(unittest.TestCase):

    def setUp(self):
        self.gate = auth.SessionGate(duration_seconds=100)

    def test_open_session_is_authenticated(self):
        self.assertFalse(self.gate.is_authenticated(1, now=0))

        self.gate.open(1, now=0)

        self.assertTrue(self.gate.is_authenticated(1, now=99))
        self.assertFalse(self.gate.is_authenticated(2, now=99))

    def test_session_expires(self):
        self.gate.open(1, now=0)

        self.assertFalse(self.gate.is_authenticated(1, now=100))
        # Expired sessions are forgotten
        self.assertFalse(self.gate.close(1))

    def test_close(self):
        self.gate.open(1, now=0)

        self.assertTrue(self.gate.close(1))
        self.assertFalse(self.gate.is_authenticated(1, now=1))


if __name__ == '__main__':
    unittest.main()
