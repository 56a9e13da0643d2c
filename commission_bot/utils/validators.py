"""
Validation utilities module
Regex patterns, input sanitizers and invoice/product validation
"""

import math
import re
from datetime import datetime
from typing import List, Optional, Union

from commission_bot.constants import (
    DEFAULT_REST_PERCENTAGE,
    ISO_DATE_FORMAT,
    NCF_CONFIG,
    VALIDATION,
)

# Regex patterns
MONEY_RGX = r"^\d+(?:\.\d{1,2})?$"
PERCENTAGE_RGX = r"^\d{1,3}(?:\.\d{1,2})?$"
NCF_RGX = r"^[A-Z0-9]+$"
PRODUCT_NAME_RGX = r"^[a-zA-ZáéíóúÁÉÍÓÚñÑ0-9\s\-\.]+$"
DATE_RGX = r"^\d{4}-\d{2}-\d{2}$"

NCF_ERRORS = (
    "NCF es requerido",
    "NCF solo puede contener letras mayúsculas y números",
)

class ValidationError(ValueError):
    """Raised when a record fails validation; carries every failed field"""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors))

def _strip_separators(s: str) -> str:
    """Remove thousands separators and whitespace"""
    return re.sub(r"[,\s]", "", s)

def safe_parse_number(value: Union[str, int, float, None]) -> float:
    """
    Parse a money amount, returning 0 for invalid input

    Negative values become 0, values above the invoice limit are clamped.
    """
    if value is None or value == "":
        return 0.0

    cleaned = _strip_separators(value) if isinstance(value, str) else str(value)
    try:
        parsed = float(cleaned)
    except ValueError:
        return 0.0

    if math.isnan(parsed) or math.isinf(parsed):
        return 0.0
    if parsed < 0:
        return 0.0
    if parsed > VALIDATION["MAX_INVOICE_AMOUNT"]:
        return float(VALIDATION["MAX_INVOICE_AMOUNT"])
    return parsed

def safe_parse_percentage(
    value: Union[str, int, float, None],
    default: float = DEFAULT_REST_PERCENTAGE,
) -> float:
    """Parse a percentage, returning default for invalid input and clamping to 0-100"""
    if value is None or value == "":
        return default

    try:
        parsed = float(value) if isinstance(value, (int, float)) else float(str(value).strip().rstrip("%"))
    except ValueError:
        return default

    if math.isnan(parsed) or math.isinf(parsed):
        return default
    if parsed < VALIDATION["MIN_PERCENTAGE"]:
        return float(VALIDATION["MIN_PERCENTAGE"])
    if parsed > VALIDATION["MAX_PERCENTAGE"]:
        return float(VALIDATION["MAX_PERCENTAGE"])
    return parsed

def sanitize_ncf(ncf: str) -> str:
    """Upper-case the NCF and keep only letters and digits"""
    return re.sub(r"[^A-Z0-9]", "", ncf.upper())[:VALIDATION["MAX_NCF_LENGTH"]]

def sanitize_product_name(name: str) -> str:
    """Trim the name and drop markup characters"""
    return re.sub(r"[<>\"'&]", "", name.strip())[:VALIDATION["MAX_PRODUCT_NAME_LENGTH"]]

def is_money(s: str) -> bool:
    """
    Validate money format

    Commas are thousands separators: "1,500.50" is valid.

    Args:
        s: String to validate

    Returns:
        True if valid money format, False otherwise
    """
    return bool(re.match(MONEY_RGX, _strip_separators(s)))

def is_percentage(s: str) -> bool:
    """Validate a 0-100 percentage, with an optional trailing %"""
    normalized = s.strip().rstrip("%").strip()
    if not re.match(PERCENTAGE_RGX, normalized):
        return False
    return float(normalized) <= VALIDATION["MAX_PERCENTAGE"]

def is_ncf(s: str) -> bool:
    s = s.strip()
    return 0 < len(s) <= VALIDATION["MAX_NCF_LENGTH"] and bool(re.match(NCF_RGX, s))

def is_product_name(s: str) -> bool:
    s = s.strip()
    return 0 < len(s) <= VALIDATION["MAX_PRODUCT_NAME_LENGTH"] and bool(re.match(PRODUCT_NAME_RGX, s))

def is_date(s: str) -> bool:
    """Validate YYYY-MM-DD that is also a real calendar date"""
    s = s.strip()
    if not re.match(DATE_RGX, s):
        return False
    try:
        datetime.strptime(s, ISO_DATE_FORMAT)
    except ValueError:
        return False
    return True

def build_ncf(number: int) -> str:
    """Build an NCF from its sequence number, e.g. 42 -> B0100000042"""
    return f"{NCF_CONFIG['PREFIX']}{number:0{NCF_CONFIG['NUMBER_LENGTH']}d}"

def extract_ncf_number(ncf: str) -> Optional[int]:
    """
    Get the sequence number of an NCF, None if there is none

    The B01 prefix is skipped; otherwise the last NUMBER_LENGTH digits are used.
    """
    ncf = ncf.strip().upper()
    if ncf.startswith(NCF_CONFIG["PREFIX"]):
        digits = ncf[NCF_CONFIG["PREFIX_LENGTH"]:]
    else:
        match = re.search(r"(\d+)$", ncf)
        if not match:
            return None
        digits = match.group(1)[-NCF_CONFIG["NUMBER_LENGTH"]:]
    if not digits.isdigit():
        return None
    return int(digits)

def _check_amount(field: str, value: float, errors: List[str]) -> None:
    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        errors.append(f"{field}: el monto debe ser un número válido")
    elif value < VALIDATION["MIN_INVOICE_AMOUNT"]:
        errors.append(f"{field}: el monto no puede ser negativo")
    elif value > VALIDATION["MAX_INVOICE_AMOUNT"]:
        errors.append(f"{field}: el monto excede el límite permitido")

def _check_percentage(field: str, value: float, errors: List[str]) -> None:
    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        errors.append(f"{field}: el porcentaje debe ser un número válido")
    elif value < VALIDATION["MIN_PERCENTAGE"]:
        errors.append(f"{field}: el porcentaje no puede ser negativo")
    elif value > VALIDATION["MAX_PERCENTAGE"]:
        errors.append(f"{field}: el porcentaje no puede ser mayor a 100")

def validate_product(name: str, percentage: float) -> None:
    """Raise ValidationError if the product name or percentage is invalid"""
    errors: List[str] = []
    if not name.strip():
        errors.append("El nombre del producto es requerido")
    elif not is_product_name(name):
        errors.append("El nombre contiene caracteres no válidos")
    _check_percentage("porcentaje", percentage, errors)
    if errors:
        raise ValidationError(errors)

def validate_invoice(invoice) -> None:
    """
    Validate an invoice record before it is stored

    Args:
        invoice: InvoiceRecord

    Raises:
        ValidationError: with one message per failed field
    """
    errors: List[str] = []

    if not invoice.ncf.strip():
        errors.append(NCF_ERRORS[0])
    elif not is_ncf(invoice.ncf):
        errors.append(NCF_ERRORS[1])

    if not is_date(invoice.invoice_date):
        errors.append("Formato de fecha inválido (YYYY-MM-DD)")

    _check_amount("total", invoice.total_amount, errors)
    _check_amount("resto", invoice.rest_amount, errors)
    _check_percentage("resto", invoice.rest_percentage, errors)
    _check_amount("comisión del resto", invoice.rest_commission, errors)
    _check_amount("comisión total", invoice.total_commission, errors)

    for line in invoice.products:
        if not is_product_name(line.name):
            errors.append(f"{line.name}: el nombre contiene caracteres no válidos")
        _check_amount(line.name, line.amount, errors)
        _check_percentage(line.name, line.percentage, errors)
        _check_amount(line.name, line.commission, errors)

    if errors:
        raise ValidationError(errors)
