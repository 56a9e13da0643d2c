"""
Commission calculation service
Splits an invoice total into product allocations plus a rest bucket
and computes the commission of every part
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from commission_bot.models import InvoiceLine, Product

@dataclass(frozen=True)
class Allocation:
    """Amount assigned to one catalog product for the current invoice"""
    product_id: str
    amount: float

@dataclass(frozen=True)
class CalculationInput:
    """Everything the calculator needs, already sanitized"""
    total: float
    allocations: Tuple[Allocation, ...] = ()
    rest_percentage: float = 0.0

@dataclass(frozen=True)
class BreakdownLine:
    name: str
    label: str
    amount: float
    percentage: float
    commission: float
    color: str

@dataclass(frozen=True)
class Breakdown:
    """Result of a calculation"""
    lines: Tuple[BreakdownLine, ...] = field(default_factory=tuple)
    rest_amount: float = 0.0
    rest_percentage: float = 0.0
    rest_commission: float = 0.0
    total_commission: float = 0.0
    over_allocated: bool = False

    @property
    def allocated_amount(self) -> float:
        return sum(line.amount for line in self.lines)

    def invoice_lines(self) -> List[InvoiceLine]:
        """Lines in the shape stored with a saved invoice"""
        return [
            InvoiceLine(
                name=line.name,
                amount=line.amount,
                percentage=line.percentage,
                commission=line.commission,
            )
            for line in self.lines
        ]

def calc_commission(amount: float, percentage: float) -> float:
    """Commission for an amount at a percentage (0-100), no rounding"""
    return amount * percentage / 100

def calc_rest_amount(total: float, allocated: Iterable[float]) -> float:
    """Part of the total not covered by allocations, floored at zero"""
    return max(0.0, total - sum(allocated))

def is_over_allocated(total: float, allocated: Iterable[float]) -> bool:
    return sum(allocated) > total

def calculate(
    total: float,
    allocations: Iterable[Tuple[float, float]],
    rest_percentage: float,
) -> Tuple[List[float], float, float, float]:
    """
    Core arithmetic of a breakdown

    Args:
        total: Invoice total
        allocations: (percentage, amount) pairs
        rest_percentage: Commission percentage for the unallocated part

    Returns:
        (per-allocation commissions, rest amount, rest commission, total commission)
    """
    pairs = list(allocations)
    if total <= 0:
        return [0.0 for _ in pairs], 0.0, 0.0, 0.0

    commissions = [calc_commission(amount, percentage) for percentage, amount in pairs]
    rest_amount = calc_rest_amount(total, (amount for _, amount in pairs))
    rest_commission = calc_commission(rest_amount, rest_percentage)
    total_commission = sum(commissions) + rest_commission
    return commissions, rest_amount, rest_commission, total_commission

def build_breakdown(calc_input: CalculationInput, catalog: Dict[str, Product]) -> Breakdown:
    """
    Build the named breakdown for a calculation

    Allocations whose product is not in the catalog are ignored.
    A zero total yields an empty breakdown with every value at zero.

    Args:
        calc_input: Total, allocations and rest percentage
        catalog: Products by id

    Returns:
        Breakdown with one line per known allocation
    """
    if calc_input.total <= 0:
        return Breakdown(rest_percentage=calc_input.rest_percentage)

    known = [
        (catalog[allocation.product_id], allocation.amount)
        for allocation in calc_input.allocations
        if allocation.product_id in catalog
    ]

    commissions, rest_amount, rest_commission, total_commission = calculate(
        calc_input.total,
        [(product.percentage, amount) for product, amount in known],
        calc_input.rest_percentage,
    )

    lines = tuple(
        BreakdownLine(
            name=product.name,
            label=f"{product.name} ({product.percentage:g}%)",
            amount=amount,
            percentage=product.percentage,
            commission=commission,
            color=product.color,
        )
        for (product, amount), commission in zip(known, commissions)
    )

    return Breakdown(
        lines=lines,
        rest_amount=rest_amount,
        rest_percentage=calc_input.rest_percentage,
        rest_commission=rest_commission,
        total_commission=total_commission,
        over_allocated=is_over_allocated(calc_input.total, (amount for _, amount in known)),
    )
