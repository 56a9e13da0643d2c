"""
Sistema propio de estados de conversación (FSM)
Guarda el paso actual de cada usuario y los datos del formulario
"""

import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

@dataclass
class UserState:
    """Estado del usuario"""
    state: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

class SimpleFSM:
    """Gestor simple de estados"""

    def __init__(self):
        # Almacén de estados: {user_id: {chat_id: UserState}}
        self._states: Dict[int, Dict[int, UserState]] = {}

    def _get_user_state(self, user_id: int, chat_id: int) -> UserState:
        """Obtener el objeto de estado del usuario"""
        if user_id not in self._states:
            self._states[user_id] = {}

        if chat_id not in self._states[user_id]:
            self._states[user_id][chat_id] = UserState()

        return self._states[user_id][chat_id]

    def set_state(self, user_id: int, chat_id: int, state: str):
        """Fijar el estado del usuario"""
        user_state = self._get_user_state(user_id, chat_id)
        user_state.state = state
        logger.info(f"Set state for user {user_id} in chat {chat_id}: {state}")

    def get_state(self, user_id: int, chat_id: int) -> Optional[str]:
        """Estado actual del usuario"""
        user_state = self._get_user_state(user_id, chat_id)
        return user_state.state

    def clear_state(self, user_id: int, chat_id: int):
        """Limpiar estado y datos del usuario"""
        user_state = self._get_user_state(user_id, chat_id)
        user_state.state = None
        user_state.data.clear()
        logger.info(f"Cleared state for user {user_id} in chat {chat_id}")

    def set_data(self, user_id: int, chat_id: int, key: str, value: Any):
        """Guardar un dato del formulario"""
        user_state = self._get_user_state(user_id, chat_id)
        user_state.data[key] = value
        logger.debug(f"Set data for user {user_id} in chat {chat_id}: {key}={value}")

    def get_data(self, user_id: int, chat_id: int, key: str = None) -> Any:
        """Obtener datos del formulario"""
        user_state = self._get_user_state(user_id, chat_id)
        if key is None:
            return user_state.data.copy()
        return user_state.data.get(key)

# Instancia global
fsm = SimpleFSM()

class States:
    """Constantes de estado de los formularios"""

    # Contraseña
    PASSWORD_SETUP = "password_setup"
    PASSWORD_CONFIRM = "password_confirm"
    PASSWORD_LOGIN = "password_login"

    # Calculadora
    CALC_TOTAL = "calc_total"
    CALC_SEARCH = "calc_search"
    CALC_NEW_PRODUCT_PERCENT = "calc_new_product_percent"
    CALC_PRODUCT_AMOUNT = "calc_product_amount"

    # Guardar factura
    INVOICE_NCF = "invoice_ncf"
    INVOICE_DATE = "invoice_date"

    # Catálogo de productos
    PRODUCT_NAME = "product_name"
    PRODUCT_PERCENT = "product_percent"
    PRODUCT_EDIT_NAME = "product_edit_name"
    PRODUCT_EDIT_PERCENT = "product_edit_percent"
    REST_PERCENT = "rest_percent"

def is_text_in_states(message, states) -> bool:
    """True for a non-command text message from a user in one of states"""
    text = getattr(message, "text", None)
    if not text or text.startswith("/"):
        return False
    return fsm.get_state(message.from_user.id, message.chat.id) in states
