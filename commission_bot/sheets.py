"""
Google Sheets integration module
Settings, product catalog and invoice history storage
"""

import datetime
import logging
import time
import uuid
import gspread
from typing import Optional, Dict, Any, List
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError

from commission_bot.config import GSPREAD_CREDENTIALS, SPREADSHEET_ID
from commission_bot.constants import (
    DEFAULT_PRODUCTS_BANK,
    DEFAULT_REST_PERCENTAGE,
    SETTINGS_KEYS,
    get_product_color,
)
from commission_bot.models import InvoiceRecord, Product
from commission_bot.utils.validators import (
    build_ncf,
    extract_ncf_number,
    safe_parse_percentage,
    validate_invoice,
    validate_product,
)

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Column layout of each worksheet (1-based positions are index + 1)
SETTINGS_COLUMNS = ["key", "value"]
PRODUCTS_COLUMNS = ["id", "name", "percentage", "color", "is_default", "created_at"]
INVOICES_COLUMNS = [
    "id", "ncf", "invoice_date", "total_amount", "rest_amount", "rest_percentage",
    "rest_commission", "total_commission", "products", "created_at",
]

# Global variables for caching
_spreadsheet: Optional[gspread.Spreadsheet] = None
_gc: Optional[gspread.Client] = None

def _get_client() -> gspread.Client:
    """Get authenticated gspread client with caching"""
    global _gc
    if _gc is None:
        credentials = Credentials.from_service_account_file(GSPREAD_CREDENTIALS, scopes=SCOPES)
        _gc = gspread.authorize(credentials)
    return _gc

def sh() -> gspread.Spreadsheet:
    """Get spreadsheet instance with caching"""
    global _spreadsheet
    if _spreadsheet is None:
        client = _get_client()
        _spreadsheet = client.open_by_key(SPREADSHEET_ID)
    return _spreadsheet

def settings_ws() -> gspread.Worksheet:
    """Get Settings worksheet"""
    return sh().worksheet("Settings")

def products_ws() -> gspread.Worksheet:
    """Get Products worksheet"""
    return sh().worksheet("Products")

def invoices_ws() -> gspread.Worksheet:
    """Get Invoices worksheet"""
    return sh().worksheet("Invoices")

def _retry_api_call(func, max_retries: int = 3, backoff_factor: float = 1.0):
    """Retry API call with exponential backoff"""
    for attempt in range(max_retries):
        try:
            return func()
        except APIError as e:
            if e.response.status_code == 429 and attempt < max_retries - 1:
                wait_time = backoff_factor * (2 ** attempt)
                logger.warning(f"Sheets quota hit, retrying in {wait_time}s")
                time.sleep(wait_time)
                continue
            raise
    return None

def _now() -> str:
    return datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')

def _find_row(records: List[Dict[str, Any]], column: str, value: Any) -> Optional[int]:
    """Sheet row number of the first record matching value (header is row 1)"""
    for i, record in enumerate(records, start=2):
        if str(record.get(column)) == str(value):
            return i
    return None

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def get_setting(key: str) -> Optional[str]:
    """Get setting value by key"""
    def _get():
        records = settings_ws().get_all_records(numericise_ignore=["all"])
        for record in records:
            if record.get("key") == key:
                value = record.get("value")
                return None if value in (None, "") else str(value)
        return None

    return _retry_api_call(_get)

def set_setting(key: str, value: Any) -> None:
    """Insert or update setting value"""
    def _set():
        ws = settings_ws()
        row = _find_row(ws.get_all_records(numericise_ignore=["all"]), "key", key)
        if row is None:
            ws.append_row([key, value])
        else:
            ws.update_cell(row, SETTINGS_COLUMNS.index("value") + 1, value)

    _retry_api_call(_set)

def get_rest_percentage() -> float:
    """Commission percentage for the unallocated part of an invoice"""
    return safe_parse_percentage(get_setting(SETTINGS_KEYS["REST_PERCENTAGE"]), DEFAULT_REST_PERCENTAGE)

def update_rest_percentage(value: float) -> float:
    percentage = safe_parse_percentage(value, DEFAULT_REST_PERCENTAGE)
    set_setting(SETTINGS_KEYS["REST_PERCENTAGE"], percentage)
    logger.info(f"Rest percentage set to {percentage}")
    return percentage

def get_last_ncf_number() -> Optional[int]:
    value = get_setting(SETTINGS_KEYS["LAST_NCF_NUMBER"])
    if value is None:
        return None
    try:
        return int(float(value))
    except ValueError:
        logger.warning(f"Invalid last_ncf_number setting: {value}")
        return None

def get_suggested_ncf() -> Optional[str]:
    """Next NCF after the last saved one"""
    last = get_last_ncf_number()
    if last is None:
        return None
    return build_ncf(last + 1)

def get_password_hash() -> Optional[str]:
    return get_setting(SETTINGS_KEYS["APP_PASSWORD"])

def set_password_hash(password_hash: str) -> None:
    set_setting(SETTINGS_KEYS["APP_PASSWORD"], password_hash)

# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def seed_default_products() -> List[Product]:
    """Fill an empty Products worksheet with the default bank"""
    def _seed():
        ws = products_ws()
        created_at = _now()
        rows = []
        for i, (name, percentage) in enumerate(DEFAULT_PRODUCTS_BANK):
            rows.append([uuid.uuid4().hex, name, percentage, get_product_color(i), True, created_at])
        ws.append_rows(rows)
        return [Product.from_record(dict(zip(PRODUCTS_COLUMNS, row))) for row in rows]

    products = _retry_api_call(_seed)
    logger.info(f"Seeded {len(products)} default products")
    return products

def list_products() -> List[Product]:
    """Get all products sorted by name, seeding defaults on first use"""
    def _list():
        return products_ws().get_all_records(numericise_ignore=["all"])

    records = _retry_api_call(_list)
    if not records:
        products = seed_default_products()
    else:
        products = [Product.from_record(r) for r in records]
    products.sort(key=lambda p: p.name.lower())
    return products

def get_product(product_id: str) -> Optional[Product]:
    for product in list_products():
        if product.id == product_id:
            return product
    return None

def add_product(name: str, percentage: float) -> Product:
    """Add a user product; color is picked by catalog size"""
    validate_product(name, percentage)

    def _add():
        ws = products_ws()
        count = len(ws.get_all_records(numericise_ignore=["all"]))
        row = [uuid.uuid4().hex, name.strip(), percentage, get_product_color(count), False, _now()]
        ws.append_row(row)
        return Product.from_record(dict(zip(PRODUCTS_COLUMNS, row)))

    product = _retry_api_call(_add)
    logger.info(f"Product added: {product.name} ({product.percentage}%)")
    return product

def update_product(product_id: str, name: Optional[str] = None, percentage: Optional[float] = None) -> bool:
    """Update product name and/or percentage, False if not found"""
    current = get_product(product_id)
    if current is None:
        return False

    new_name = current.name if name is None else name.strip()
    new_percentage = current.percentage if percentage is None else percentage
    validate_product(new_name, new_percentage)

    def _update():
        ws = products_ws()
        row = _find_row(ws.get_all_records(numericise_ignore=["all"]), "id", product_id)
        if row is None:
            return False
        ws.update_cell(row, PRODUCTS_COLUMNS.index("name") + 1, new_name)
        ws.update_cell(row, PRODUCTS_COLUMNS.index("percentage") + 1, new_percentage)
        return True

    updated = _retry_api_call(_update)
    if updated:
        logger.info(f"Product {product_id} updated: {new_name} ({new_percentage}%)")
    return updated

def delete_product(product_id: str) -> bool:
    """Delete a user product; default products are never removed"""
    def _delete():
        ws = products_ws()
        records = ws.get_all_records(numericise_ignore=["all"])
        row = _find_row(records, "id", product_id)
        if row is None:
            return False
        if Product.from_record(records[row - 2]).is_default:
            logger.warning(f"Refusing to delete default product {product_id}")
            return False
        ws.delete_rows(row)
        return True

    deleted = _retry_api_call(_delete)
    if deleted:
        logger.info(f"Product {product_id} deleted")
    return deleted

# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------

def list_invoices() -> List[InvoiceRecord]:
    """Get saved invoices, newest first"""
    def _list():
        return invoices_ws().get_all_records(numericise_ignore=["all"])

    records = _retry_api_call(_list)
    invoices = [InvoiceRecord.from_record(r) for r in records]
    invoices.sort(key=lambda inv: (inv.invoice_date, inv.created_at), reverse=True)
    return invoices

def get_invoice(invoice_id: str) -> Optional[InvoiceRecord]:
    for invoice in list_invoices():
        if invoice.id == invoice_id:
            return invoice
    return None

def save_invoice(invoice: InvoiceRecord) -> InvoiceRecord:
    """
    Validate and store an invoice

    Also advances last_ncf_number when the NCF carries a larger sequence.

    Args:
        invoice: Invoice without id/created_at

    Returns:
        Stored invoice with id and created_at filled in

    Raises:
        ValidationError: if the invoice is invalid
    """
    validate_invoice(invoice)
    invoice.id = invoice.id or uuid.uuid4().hex
    invoice.created_at = invoice.created_at or _now()

    def _append():
        invoices_ws().append_row(invoice.to_row())

    _retry_api_call(_append)
    logger.info(f"Invoice {invoice.ncf} saved, commission {invoice.total_commission:.2f}")

    number = extract_ncf_number(invoice.ncf)
    last = get_last_ncf_number()
    if number is not None and (last is None or number > last):
        set_setting(SETTINGS_KEYS["LAST_NCF_NUMBER"], number)

    return invoice

def delete_invoice(invoice_id: str) -> bool:
    """Delete a saved invoice, False if not found"""
    def _delete():
        ws = invoices_ws()
        row = _find_row(ws.get_all_records(numericise_ignore=["all"]), "id", invoice_id)
        if row is None:
            return False
        ws.delete_rows(row)
        return True

    deleted = _retry_api_call(_delete)
    if deleted:
        logger.info(f"Invoice {invoice_id} deleted")
    return deleted
