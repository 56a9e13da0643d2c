"""
Display formatting helpers
"""

from datetime import datetime

from commission_bot.constants import ISO_DATE_FORMAT

MONTHS_SHORT = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic"]
MONTHS_LONG = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]

def format_number(value: float) -> str:
    """Thousands-separated number, decimals only when present: 1500 -> 1,500"""
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"

def format_currency(value: float) -> str:
    """Two-decimal currency: 1500 -> $1,500.00"""
    return f"${value:,.2f}"

def format_percentage(value: float) -> str:
    return f"{value:g}%"

def format_date(iso_date: str) -> str:
    """YYYY-MM-DD -> '5 ene 2025'; unparseable input is returned as is"""
    try:
        d = datetime.strptime(iso_date, ISO_DATE_FORMAT)
    except (TypeError, ValueError):
        return iso_date
    return f"{d.day} {MONTHS_SHORT[d.month - 1]} {d.year}"

def format_month(year: int, month: int) -> str:
    """(2025, 1) -> 'enero 2025'"""
    return f"{MONTHS_LONG[month - 1]} {year}"
