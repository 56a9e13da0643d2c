"""
Unit tests for invoice export: PDF, CSV and monthly summary
"""

import csv
import os
import tempfile
import unittest

from commission_bot.models import InvoiceLine, InvoiceRecord
from commission_bot.services.export import (
    build_invoice_pdf,
    export_invoices_csv,
    pdf_filename,
    summarize_by_month,
)


def _invoice(ncf, invoice_date, total_amount, total_commission, products=None):
    return InvoiceRecord(
        ncf=ncf,
        invoice_date=invoice_date,
        total_amount=total_amount,
        rest_amount=total_amount,
        rest_percentage=25.0,
        rest_commission=total_amount * 0.25,
        total_commission=total_commission,
        products=products or [],
        id=ncf.lower(),
        created_at=f"{invoice_date} 10:00:00",
    )


class TestPdfExport(unittest.TestCase):

    def test_build_invoice_pdf(self):
        invoice = _invoice(
            "B0100000042", "2025-01-15", 1000.0, 270.0,
            products=[InvoiceLine(name="Colgate", amount=400.0, percentage=30.0, commission=120.0)],
        )

        pdf = build_invoice_pdf(invoice)

        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertGreater(len(pdf), 1000)

    def test_pdf_without_products(self):
        pdf = build_invoice_pdf(_invoice("B0100000001", "2025-01-15", 500.0, 125.0))
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_pdf_filename(self):
        invoice = _invoice("B0100000042", "2025-01-15", 1000.0, 270.0)
        self.assertEqual(pdf_filename(invoice), "factura_B0100000042_2025-01-15.pdf")


class TestCsvExport(unittest.TestCase):

    def test_export_invoices_csv(self):
        invoices = [
            _invoice("B0100000002", "2025-02-01", 500.0, 125.0),
            _invoice("B0100000001", "2025-01-15", 1000.0, 270.0),
        ]
        with tempfile.NamedTemporaryFile(delete=False, suffix='.csv') as tmp:
            path = tmp.name
        self.addCleanup(os.unlink, path)

        export_invoices_csv(invoices, path)

        with open(path, encoding='utf-8') as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0], ['NCF', 'Fecha', 'Total', 'Resto', 'Comision Resto', 'Comision Total'])
        self.assertEqual(rows[1], ['B0100000002', '2025-02-01', '500.00', '500.00', '125.00', '125.00'])
        self.assertEqual(len(rows), 3)


class TestMonthlySummary(unittest.TestCase):

    def test_summarize_by_month(self):
        invoices = [
            _invoice("B01", "2025-01-15", 1000.0, 270.0),
            _invoice("B02", "2025-02-01", 500.0, 125.0),
            _invoice("B03", "2025-01-20", 200.0, 50.0),
            _invoice("B04", "", 100.0, 25.0),
        ]

        months = summarize_by_month(invoices)

        self.assertEqual([(m.year, m.month) for m in months], [(2025, 2), (2025, 1)])
        january = months[1]
        self.assertEqual(january.invoices, 2)
        self.assertEqual(january.total_amount, 1200.0)
        self.assertEqual(january.total_commission, 320.0)
        self.assertEqual(january.label, "enero 2025")

    def test_empty_history(self):
        self.assertEqual(summarize_by_month([]), [])


if __name__ == '__main__':
    unittest.main()
