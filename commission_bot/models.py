"""
Data models for the commission calculator
Rows of the Products and Invoices worksheets
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

def _as_bool(value: Any) -> bool:
    """Sheets returns booleans as 'TRUE'/'FALSE' strings"""
    if isinstance(value, bool):
        return value
    return str(value).strip().upper() in ("TRUE", "1", "YES")

def _as_float(value: Any) -> float:
    """Numeric cell value; blank or unparseable cells read as 0"""
    if value in (None, ""):
        return 0.0
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        logger.warning(f"Invalid numeric cell value: {value!r}")
        return 0.0

@dataclass
class Product:
    """Catalog product with its commission percentage"""
    id: str
    name: str
    percentage: float  # 0-100
    color: str
    is_default: bool = False

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Product":
        return cls(
            id=str(record.get("id", "")),
            name=str(record.get("name", "")),
            percentage=_as_float(record.get("percentage")),
            color=str(record.get("color", "")),
            is_default=_as_bool(record.get("is_default", False)),
        )

@dataclass
class InvoiceLine:
    """Snapshot of one breakdown line inside a saved invoice"""
    name: str
    amount: float
    percentage: float
    commission: float

@dataclass
class InvoiceRecord:
    """Saved invoice: NCF, date and the computed breakdown"""
    ncf: str
    invoice_date: str  # YYYY-MM-DD
    total_amount: float
    rest_amount: float
    rest_percentage: float
    rest_commission: float
    total_commission: float
    products: List[InvoiceLine] = field(default_factory=list)
    id: str = ""
    created_at: str = ""

    def products_json(self) -> str:
        return json.dumps(
            [line.__dict__ for line in self.products],
            ensure_ascii=False,
        )

    def to_row(self) -> List[Any]:
        """Row in Invoices worksheet column order"""
        return [
            self.id,
            self.ncf,
            self.invoice_date,
            self.total_amount,
            self.rest_amount,
            self.rest_percentage,
            self.rest_commission,
            self.total_commission,
            self.products_json(),
            self.created_at,
        ]

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "InvoiceRecord":
        raw_products = record.get("products") or "[]"
        try:
            items = json.loads(raw_products)
        except (TypeError, ValueError):
            items = []
        lines = [
            InvoiceLine(
                name=str(item.get("name", "")),
                amount=_as_float(item.get("amount")),
                percentage=_as_float(item.get("percentage")),
                commission=_as_float(item.get("commission")),
            )
            for item in items
        ]
        return cls(
            id=str(record.get("id", "")),
            ncf=str(record.get("ncf", "")),
            invoice_date=str(record.get("invoice_date", "")),
            total_amount=_as_float(record.get("total_amount")),
            rest_amount=_as_float(record.get("rest_amount")),
            rest_percentage=_as_float(record.get("rest_percentage")),
            rest_commission=_as_float(record.get("rest_commission")),
            total_commission=_as_float(record.get("total_commission")),
            products=lines,
            created_at=str(record.get("created_at", "")),
        )
