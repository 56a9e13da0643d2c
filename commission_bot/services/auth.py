"""
Password gate service
One shared password, stored hashed in Settings; per-user sessions kept in memory
"""

import hashlib
import hmac
import logging
import time
from typing import Dict, Optional

from commission_bot import sheets
from commission_bot.config import PASSWORD_SALT, SESSION_HOURS

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4

def hash_password(password: str, salt: str = PASSWORD_SALT) -> str:
    """SHA-256 hex digest of password + salt"""
    return hashlib.sha256((password + salt).encode("utf-8")).hexdigest()

def validate_new_password(password: str, confirm: str) -> Optional[str]:
    """
    Check a new password

    Returns:
        Error message, or None if the password is acceptable
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres"
    if password != confirm:
        return "Las contraseñas no coinciden"
    return None

def has_password() -> bool:
    return bool(sheets.get_password_hash())

def setup_password(password: str) -> None:
    """Store the shared password hash (first run)"""
    sheets.set_password_hash(hash_password(password))
    logger.info("Application password configured")

def check_password(password: str) -> bool:
    """
    Compare password against the stored hash

    Raises:
        LookupError: if no password has been configured yet
    """
    stored = sheets.get_password_hash()
    if not stored:
        raise LookupError("Application password is not configured")
    return hmac.compare_digest(stored.encode("utf-8"), hash_password(password).encode("utf-8"))

class SessionGate:
    """Authenticated sessions by Telegram user id"""

    def __init__(self, duration_seconds: float = SESSION_HOURS * 3600):
        self.duration_seconds = duration_seconds
        # {user_id: opened_at}
        self._sessions: Dict[int, float] = {}

    def open(self, user_id: int, now: Optional[float] = None):
        self._sessions[user_id] = time.time() if now is None else now
        logger.info(f"Session opened for user {user_id}")

    def close(self, user_id: int) -> bool:
        """Close session, False if there was none"""
        closed = self._sessions.pop(user_id, None) is not None
        if closed:
            logger.info(f"Session closed for user {user_id}")
        return closed

    def is_authenticated(self, user_id: int, now: Optional[float] = None) -> bool:
        opened_at = self._sessions.get(user_id)
        if opened_at is None:
            return False
        now = time.time() if now is None else now
        if now - opened_at < self.duration_seconds:
            return True
        # Expired
        del self._sessions[user_id]
        logger.info(f"Session expired for user {user_id}")
        return False

# Global gate instance
gate = SessionGate()
