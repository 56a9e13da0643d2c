"""
Calculation sessions
Invoice total, selected products and entered amounts for each chat
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union

from commission_bot.services.commission import Allocation, CalculationInput
from commission_bot.utils.validators import safe_parse_number

logger = logging.getLogger(__name__)

@dataclass
class CalculationSession:
    """Presentation state of one calculation; never read by the calculator"""
    total: float = 0.0
    selected: List[str] = field(default_factory=list)
    amounts: Dict[str, float] = field(default_factory=dict)

    def set_total(self, value: Union[str, float, None]):
        self.total = safe_parse_number(value)

    def add_product(self, product_id: str) -> bool:
        """Select product, False if already selected"""
        if product_id in self.selected:
            return False
        self.selected.append(product_id)
        return True

    def remove_product(self, product_id: str):
        if product_id in self.selected:
            self.selected.remove(product_id)
        self.amounts.pop(product_id, None)

    def set_amount(self, product_id: str, value: Union[str, float, None]):
        self.add_product(product_id)
        self.amounts[product_id] = safe_parse_number(value)

    def allocated(self) -> float:
        return sum(self.amounts.get(pid, 0.0) for pid in self.selected)

    def reset(self):
        self.total = 0.0
        self.selected.clear()
        self.amounts.clear()

    def to_input(self, rest_percentage: float) -> CalculationInput:
        return CalculationInput(
            total=self.total,
            allocations=tuple(
                Allocation(product_id=pid, amount=self.amounts.get(pid, 0.0))
                for pid in self.selected
            ),
            rest_percentage=rest_percentage,
        )

class SessionStore:
    """Calculation sessions by (user_id, chat_id)"""

    def __init__(self):
        self._sessions: Dict[Tuple[int, int], CalculationSession] = {}

    def get(self, user_id: int, chat_id: int) -> CalculationSession:
        key = (user_id, chat_id)
        if key not in self._sessions:
            self._sessions[key] = CalculationSession()
        return self._sessions[key]

    def reset(self, user_id: int, chat_id: int) -> CalculationSession:
        session = self.get(user_id, chat_id)
        session.reset()
        logger.info(f"Calculation reset for user {user_id} in chat {chat_id}")
        return session

# Global session store
sessions = SessionStore()
