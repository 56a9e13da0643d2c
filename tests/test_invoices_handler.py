"""
Unit tests for invoices handler
"""

import unittest
from unittest.mock import Mock, patch

from commission_bot.handlers import invoices
from commission_bot.models import InvoiceLine, InvoiceRecord


def _invoice(invoice_id="i1", invoice_date="2025-01-15"):
    return InvoiceRecord(
        ncf="B0100000042",
        invoice_date=invoice_date,
        total_amount=1000.0,
        rest_amount=600.0,
        rest_percentage=25.0,
        rest_commission=150.0,
        total_commission=270.0,
        products=[InvoiceLine(name="Colgate", amount=400.0, percentage=30.0, commission=120.0)],
        id=invoice_id,
    )


class TestInvoicesHandler(unittest.TestCase):

    def test_render_empty_history(self):
        self.assertIn("No hay facturas guardadas", invoices.render_history([]))

    def test_render_history_summarizes_months(self):
        text = invoices.render_history([_invoice("i2", "2025-02-01"), _invoice("i1")])

        self.assertIn("febrero 2025", text)
        self.assertIn("enero 2025", text)
        self.assertIn("Últimas 2 facturas", text)

    def test_render_invoice(self):
        text = invoices.render_invoice(_invoice())

        self.assertIn("Factura B0100000042", text)
        self.assertIn("15 ene 2025", text)
        self.assertIn("Colgate (30%): $400.00 → $120.00", text)
        self.assertIn("Comisión total: $270.00", text)

    @patch('commission_bot.handlers.invoices.bot')
    @patch('commission_bot.handlers.invoices.sheets')
    def test_send_pdf(self, mock_sheets, mock_bot):
        """
        Test that the PDF is sent as a named document
        """
        mock_sheets.get_invoice.return_value = _invoice()
        call = Mock()
        call.data = "inv_pdf_i1"
        call.message.chat.id = 5

        with patch('commission_bot.handlers.invoices.ensure_authenticated_call', return_value=True):
            invoices.send_invoice_pdf(call)

        mock_sheets.get_invoice.assert_called_once_with("i1")
        kwargs = mock_bot.send_document.call_args[1]
        self.assertEqual(kwargs['visible_file_name'], "factura_B0100000042_2025-01-15.pdf")
        document = mock_bot.send_document.call_args[0][1]
        self.assertTrue(document.getvalue().startswith(b"%PDF"))

    @patch('commission_bot.handlers.invoices.bot')
    @patch('commission_bot.handlers.invoices.sheets')
    def test_missing_invoice(self, mock_sheets, mock_bot):
        mock_sheets.get_invoice.return_value = None
        call = Mock()
        call.data = "inv_view_zzz"

        with patch('commission_bot.handlers.invoices.ensure_authenticated_call', return_value=True):
            invoices.show_invoice(call)

        mock_bot.answer_callback_query.assert_called_once_with(call.id, "❌ Factura no encontrada")
        mock_bot.send_message.assert_not_called()


if __name__ == '__main__':
    unittest.main()
