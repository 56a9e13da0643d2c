"""
Unit tests for products handler
Tests for creating and editing catalog products and the rest percentage
"""

import unittest
from unittest.mock import Mock, patch

from commission_bot.fsm import fsm, States
from commission_bot.handlers import products
from commission_bot.models import Product
from commission_bot.utils.validators import ValidationError


class TestProductsHandler(unittest.TestCase):

    def setUp(self):
        self.mock_message = Mock()
        self.mock_message.from_user.id = 111
        self.mock_message.chat.id = 222

        fsm.clear_state(111, 222)
        self.addCleanup(fsm.clear_state, 111, 222)

    @patch('commission_bot.handlers.products.bot')
    @patch('commission_bot.handlers.products.sheets')
    def test_create_product(self, mock_sheets, mock_bot):
        """
        Test that name and percentage steps create a product
        """
        mock_sheets.add_product.return_value = Product(id="n1", name="Jabón Azul", percentage=15, color="#6366f1")
        fsm.set_state(111, 222, States.PRODUCT_NAME)

        self.mock_message.text = " Jabón Azul "
        products.process_product_name(self.mock_message)
        self.assertEqual(fsm.get_state(111, 222), States.PRODUCT_PERCENT)

        self.mock_message.text = "15"
        products.process_product_percent(self.mock_message)

        mock_sheets.add_product.assert_called_once_with("Jabón Azul", 15.0)
        mock_bot.reply_to.assert_called_with(self.mock_message, "✅ Producto Jabón Azul (15%) creado")
        self.assertIsNone(fsm.get_state(111, 222))

    @patch('commission_bot.handlers.products.bot')
    @patch('commission_bot.handlers.products.sheets')
    def test_invalid_percentage_keeps_state(self, mock_sheets, mock_bot):
        fsm.set_state(111, 222, States.PRODUCT_PERCENT)
        fsm.set_data(111, 222, 'name', "Jabón")
        self.mock_message.text = "150"

        products.process_product_percent(self.mock_message)

        mock_sheets.add_product.assert_not_called()
        self.assertEqual(fsm.get_state(111, 222), States.PRODUCT_PERCENT)

    @patch('commission_bot.handlers.products.bot')
    @patch('commission_bot.handlers.products.sheets')
    def test_validation_error_is_reported(self, mock_sheets, mock_bot):
        mock_sheets.add_product.side_effect = ValidationError(["El nombre del producto es requerido"])
        fsm.set_state(111, 222, States.PRODUCT_PERCENT)
        fsm.set_data(111, 222, 'name', "")
        self.mock_message.text = "10"

        products.process_product_percent(self.mock_message)

        mock_bot.reply_to.assert_called_once_with(self.mock_message, "❌ El nombre del producto es requerido")
        self.assertIsNone(fsm.get_state(111, 222))

    @patch('commission_bot.handlers.products.bot')
    @patch('commission_bot.handlers.products.sheets')
    def test_edit_percentage(self, mock_sheets, mock_bot):
        mock_sheets.update_product.return_value = True
        fsm.set_state(111, 222, States.PRODUCT_EDIT_PERCENT)
        fsm.set_data(111, 222, 'product_id', "p1")
        self.mock_message.text = "22.5%"

        products.process_edit_percentage(self.mock_message)

        mock_sheets.update_product.assert_called_once_with("p1", percentage=22.5)
        mock_bot.reply_to.assert_called_once_with(self.mock_message, "✅ Producto actualizado")

    @patch('commission_bot.handlers.products.bot')
    @patch('commission_bot.handlers.products.sheets')
    def test_delete_default_product_is_refused(self, mock_sheets, mock_bot):
        mock_sheets.delete_product.return_value = False
        call = Mock()
        call.data = "prod_delok_p1"

        with patch('commission_bot.handlers.products.ensure_authenticated_call', return_value=True):
            products.delete_product(call)

        mock_sheets.delete_product.assert_called_once_with("p1")
        mock_bot.edit_message_text.assert_not_called()

    @patch('commission_bot.handlers.products.bot')
    @patch('commission_bot.handlers.products.sheets')
    def test_update_rest_percentage(self, mock_sheets, mock_bot):
        mock_sheets.update_rest_percentage.return_value = 20.0
        fsm.set_state(111, 222, States.REST_PERCENT)
        self.mock_message.text = "20"

        products.process_rest_percentage(self.mock_message)

        mock_sheets.update_rest_percentage.assert_called_once_with(20.0)
        mock_bot.reply_to.assert_called_once_with(self.mock_message, "✅ Porcentaje del resto: 20%")
        self.assertIsNone(fsm.get_state(111, 222))


if __name__ == '__main__':
    unittest.main()
