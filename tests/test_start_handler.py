"""
Unit tests for start handler
Tests for the password gate: first-run setup, login and active sessions
"""

import unittest
from unittest.mock import Mock, patch

from commission_bot.fsm import fsm, States
from commission_bot.handlers.start import (
    handle_cancel,
    handle_logout,
    handle_start,
    process_confirm_password,
    process_login,
    process_setup_password,
)


class TestStartHandler(unittest.TestCase):
    """Test cases for start handler functionality"""

    def setUp(self):
        """Set up test fixtures"""
        self.mock_user = Mock()
        self.mock_user.id = 12345
        self.mock_user.username = "testuser"

        self.mock_chat = Mock()
        self.mock_chat.id = 12345

        self.mock_message = Mock()
        self.mock_message.from_user = self.mock_user
        self.mock_message.chat = self.mock_chat
        self.mock_message.message_id = 1

        fsm.clear_state(12345, 12345)
        self.addCleanup(fsm.clear_state, 12345, 12345)

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    def test_first_run_asks_for_new_password(self, mock_auth, mock_bot):
        """
        Test that without a stored password the user is asked to create one
        """
        mock_auth.gate.is_authenticated.return_value = False
        mock_auth.has_password.return_value = False
        mock_auth.MIN_PASSWORD_LENGTH = 4

        handle_start(self.mock_message)

        self.assertEqual(fsm.get_state(12345, 12345), States.PASSWORD_SETUP)
        text = mock_bot.reply_to.call_args[0][1]
        self.assertIn("Configurar contraseña", text)

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    def test_configured_password_asks_for_login(self, mock_auth, mock_bot):
        """
        Test that with a stored password the user is asked to log in
        """
        mock_auth.gate.is_authenticated.return_value = False
        mock_auth.has_password.return_value = True

        handle_start(self.mock_message)

        self.assertEqual(fsm.get_state(12345, 12345), States.PASSWORD_LOGIN)
        mock_bot.reply_to.assert_called_once_with(self.mock_message, "🔒 Ingrese la contraseña:")

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    @patch('commission_bot.handlers.start.show_main_menu')
    def test_authenticated_user_gets_menu(self, mock_menu, mock_auth, mock_bot):
        """
        Test that a user with an open session goes straight to the menu
        """
        mock_auth.gate.is_authenticated.return_value = True

        handle_start(self.mock_message)

        mock_menu.assert_called_once_with(12345)
        mock_auth.has_password.assert_not_called()

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    def test_storage_error_is_reported(self, mock_auth, mock_bot):
        mock_auth.gate.is_authenticated.return_value = False
        mock_auth.has_password.side_effect = RuntimeError("sheets down")

        handle_start(self.mock_message)

        mock_bot.reply_to.assert_called_once_with(self.mock_message, "❌ Error al verificar la contraseña")
        self.assertIsNone(fsm.get_state(12345, 12345))

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    @patch('commission_bot.handlers.start.show_main_menu')
    def test_setup_flow_opens_session(self, mock_menu, mock_auth, mock_bot):
        """
        Test that matching passwords are stored and a session is opened
        """
        mock_auth.MIN_PASSWORD_LENGTH = 4
        mock_auth.validate_new_password.return_value = None
        fsm.set_state(12345, 12345, States.PASSWORD_SETUP)

        self.mock_message.text = "secreto"
        process_setup_password(self.mock_message)
        self.assertEqual(fsm.get_state(12345, 12345), States.PASSWORD_CONFIRM)

        process_confirm_password(self.mock_message)

        mock_auth.validate_new_password.assert_called_once_with("secreto", "secreto")
        mock_auth.setup_password.assert_called_once_with("secreto")
        mock_auth.gate.open.assert_called_once_with(12345)
        self.assertIsNone(fsm.get_state(12345, 12345))
        mock_menu.assert_called_once_with(12345)

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    def test_short_password_is_rejected(self, mock_auth, mock_bot):
        mock_auth.MIN_PASSWORD_LENGTH = 4
        fsm.set_state(12345, 12345, States.PASSWORD_SETUP)
        self.mock_message.text = "abc"

        process_setup_password(self.mock_message)

        self.assertEqual(fsm.get_state(12345, 12345), States.PASSWORD_SETUP)
        self.assertIsNone(fsm.get_data(12345, 12345, 'password'))

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    def test_mismatched_confirmation_restarts_setup(self, mock_auth, mock_bot):
        mock_auth.validate_new_password.return_value = "Las contraseñas no coinciden"
        fsm.set_state(12345, 12345, States.PASSWORD_CONFIRM)
        fsm.set_data(12345, 12345, 'password', "secreto")
        self.mock_message.text = "otro"

        process_confirm_password(self.mock_message)

        self.assertEqual(fsm.get_state(12345, 12345), States.PASSWORD_SETUP)
        mock_auth.setup_password.assert_not_called()
        mock_auth.gate.open.assert_not_called()

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    def test_wrong_password_keeps_login_state(self, mock_auth, mock_bot):
        """
        Test that a wrong password does not open a session
        """
        mock_auth.check_password.return_value = False
        fsm.set_state(12345, 12345, States.PASSWORD_LOGIN)
        self.mock_message.text = "nope"

        process_login(self.mock_message)

        mock_auth.gate.open.assert_not_called()
        self.assertEqual(fsm.get_state(12345, 12345), States.PASSWORD_LOGIN)
        mock_bot.send_message.assert_called_once_with(12345, "❌ Contraseña incorrecta. Intente de nuevo:")
        mock_bot.delete_message.assert_called_once_with(12345, 1)

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    @patch('commission_bot.handlers.start.show_main_menu')
    def test_correct_password_opens_session(self, mock_menu, mock_auth, mock_bot):
        mock_auth.check_password.return_value = True
        fsm.set_state(12345, 12345, States.PASSWORD_LOGIN)
        self.mock_message.text = "secreto"

        process_login(self.mock_message)

        mock_auth.gate.open.assert_called_once_with(12345)
        self.assertIsNone(fsm.get_state(12345, 12345))
        mock_menu.assert_called_once_with(12345)

    @patch('commission_bot.handlers.start.bot')
    @patch('commission_bot.handlers.start.auth')
    def test_logout(self, mock_auth, mock_bot):
        mock_auth.gate.close.return_value = True

        handle_logout(self.mock_message)

        mock_auth.gate.close.assert_called_once_with(12345)
        mock_bot.reply_to.assert_called_once_with(self.mock_message, "👋 Sesión cerrada")

    @patch('commission_bot.handlers.start.bot')
    def test_cancel_clears_state(self, mock_bot):
        fsm.set_state(12345, 12345, States.CALC_TOTAL)

        handle_cancel(self.mock_message)

        self.assertIsNone(fsm.get_state(12345, 12345))
        mock_bot.reply_to.assert_called_once_with(self.mock_message, "❌ Operación cancelada")


if __name__ == '__main__':
    unittest.main()
