"""
Invoice export service
PDF documents for single invoices, CSV and monthly summaries for the history
"""

import csv
from collections import OrderedDict
from dataclasses import dataclass
from io import BytesIO
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from commission_bot.constants import PDF_CONFIG
from commission_bot.models import InvoiceRecord
from commission_bot.utils.formatters import (
    format_currency,
    format_date,
    format_month,
    format_percentage,
)

PDF_COLORS = {name: colors.HexColor(value) for name, value in PDF_CONFIG["COLORS"].items()}
FONT_SIZES = PDF_CONFIG["FONT_SIZES"]

@dataclass
class MonthSummary:
    year: int
    month: int
    invoices: int = 0
    total_amount: float = 0.0
    total_commission: float = 0.0

    @property
    def label(self) -> str:
        return format_month(self.year, self.month)

def pdf_filename(invoice: InvoiceRecord) -> str:
    return f"factura_{invoice.ncf}_{invoice.invoice_date}.pdf"

def build_invoice_pdf(invoice: InvoiceRecord) -> bytes:
    """
    Render a saved invoice as an A4 PDF

    Args:
        invoice: Saved invoice

    Returns:
        PDF document bytes
    """
    buffer = BytesIO()
    margin = PDF_CONFIG["MARGIN"] * mm
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=margin, rightMargin=margin, topMargin=margin, bottomMargin=margin,
        title=f"Factura {invoice.ncf}",
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        name="InvoiceTitle", parent=styles["Title"],
        fontSize=FONT_SIZES["title"], textColor=PDF_COLORS["darkGrey"], alignment=0,
    )
    subtitle_style = ParagraphStyle(
        name="InvoiceSubtitle", parent=styles["Normal"],
        fontSize=FONT_SIZES["subtitle"], textColor=PDF_COLORS["mediumGrey"],
    )
    footer_style = ParagraphStyle(
        name="InvoiceFooter", parent=styles["Normal"],
        fontSize=FONT_SIZES["tiny"], textColor=PDF_COLORS["lightGrey"],
    )

    story = [
        Paragraph("Reporte de Comisiones", title_style),
        Paragraph(f"NCF: <b>{invoice.ncf}</b> &nbsp;&nbsp; Fecha: {format_date(invoice.invoice_date)}", subtitle_style),
        Spacer(1, 6 * mm),
    ]

    table_data = [["Concepto", "Monto", "%", "Comisión"]]
    for line in invoice.products:
        table_data.append([
            line.name,
            format_currency(line.amount),
            format_percentage(line.percentage),
            format_currency(line.commission),
        ])
    table_data.append([
        "Resto",
        format_currency(invoice.rest_amount),
        format_percentage(invoice.rest_percentage),
        format_currency(invoice.rest_commission),
    ])
    table_data.append([
        "Total factura",
        format_currency(invoice.total_amount),
        "",
        format_currency(invoice.total_commission),
    ])

    table = Table(table_data, repeatRows=1, colWidths=[70 * mm, 40 * mm, 25 * mm, 40 * mm])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), PDF_COLORS["veryLightGrey"]),
        ("TEXTCOLOR", (0, 0), (-1, 0), PDF_COLORS["darkGrey"]),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), FONT_SIZES["body"]),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("LINEBELOW", (0, 0), (-1, -1), 0.5, PDF_COLORS["border"]),
        ("ROWBACKGROUNDS", (0, 1), (-1, -2), [colors.white, PDF_COLORS["background"]]),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("TEXTCOLOR", (-1, -1), (-1, -1), PDF_COLORS["success"]),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story.append(table)
    story.append(Spacer(1, 8 * mm))
    story.append(Paragraph(f"Generado el {invoice.created_at or invoice.invoice_date}", footer_style))

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes

def export_invoices_csv(invoices: List[InvoiceRecord], filepath: str) -> None:
    """
    Export invoice history to CSV file
    CSV columns: NCF, Fecha, Total, Resto, Comision Resto, Comision Total
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['NCF', 'Fecha', 'Total', 'Resto', 'Comision Resto', 'Comision Total'])
        for inv in invoices:
            writer.writerow([
                inv.ncf,
                inv.invoice_date,
                f"{inv.total_amount:.2f}",
                f"{inv.rest_amount:.2f}",
                f"{inv.rest_commission:.2f}",
                f"{inv.total_commission:.2f}",
            ])

def summarize_by_month(invoices: List[InvoiceRecord]) -> List[MonthSummary]:
    """Group invoices by month of invoice date, newest month first"""
    months: "OrderedDict[tuple, MonthSummary]" = OrderedDict()
    for inv in invoices:
        try:
            year, month = int(inv.invoice_date[:4]), int(inv.invoice_date[5:7])
        except ValueError:
            continue
        key = (year, month)
        if key not in months:
            months[key] = MonthSummary(year=year, month=month)
        summary = months[key]
        summary.invoices += 1
        summary.total_amount += inv.total_amount
        summary.total_commission += inv.total_commission
    return [months[k] for k in sorted(months, reverse=True)]
