"""
Application constants
Palette, validation limits, NCF layout and the default product bank
"""

from typing import Dict, List, Tuple

# Default commission for the part of the invoice not assigned to a product
DEFAULT_REST_PERCENTAGE: float = 25

# Suggested percentage for products created from the search box
DEFAULT_NEW_PRODUCT_PERCENTAGE: float = 15

PRODUCT_COLORS: Tuple[str, ...] = (
    "#10b981",  # Emerald
    "#f59e0b",  # Amber
    "#6366f1",  # Indigo
    "#ec4899",  # Pink
    "#8b5cf6",  # Violet
    "#14b8a6",  # Teal
    "#f97316",  # Orange
    "#06b6d4",  # Cyan
    "#84cc16",  # Lime
    "#ef4444",  # Red
)

# NCF: Dominican Republic fiscal receipt numbers, e.g. B0100000042
NCF_CONFIG: Dict[str, object] = {
    "PREFIX": "B01",
    "PREFIX_LENGTH": 3,
    "NUMBER_LENGTH": 8,
    "TOTAL_LENGTH": 11,
}

VALIDATION: Dict[str, int] = {
    "MAX_INVOICE_AMOUNT": 999_999_999,
    "MIN_INVOICE_AMOUNT": 0,
    "MAX_PERCENTAGE": 100,
    "MIN_PERCENTAGE": 0,
    "MAX_PRODUCT_NAME_LENGTH": 100,
    "MAX_NCF_LENGTH": 19,
}

# Products seeded on first run, marked as non-removable
DEFAULT_PRODUCTS_BANK: List[Tuple[str, float]] = [
    ("Colgate", 30),
    ("Palmolive", 30),
    ("Fabuloso", 30),
    ("Axion", 30),
    ("Suavitel", 28),
    ("Ajax", 28),
    ("Protex", 27),
    ("Irish Spring", 27),
    ("Speed Stick", 26),
    ("Lady Speed Stick", 26),
    ("Softsoap", 25),
    ("Sanex", 25),
]

PDF_CONFIG: Dict[str, object] = {
    "COLORS": {
        "darkGrey": "#404040",
        "mediumGrey": "#666666",
        "lightGrey": "#888888",
        "veryLightGrey": "#e5e5e5",
        "background": "#f8f8f8",
        "border": "#d0d0d0",
        "success": "#2d8a4e",
    },
    "MARGIN": 15,  # mm
    "FONT_SIZES": {
        "title": 18,
        "subtitle": 11,
        "body": 10,
        "small": 8,
        "tiny": 7,
    },
}

# Keys of the Settings worksheet
SETTINGS_KEYS: Dict[str, str] = {
    "REST_PERCENTAGE": "rest_percentage",
    "LAST_NCF_NUMBER": "last_ncf_number",
    "APP_PASSWORD": "app_password",
}

ISO_DATE_FORMAT = "%Y-%m-%d"

def get_product_color(index: int) -> str:
    """Get palette color by product index (cycles through the palette)"""
    return PRODUCT_COLORS[index % len(PRODUCT_COLORS)]
