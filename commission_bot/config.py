"""
Configuration module for Commission Calculator Bot
Loads environment variables and provides typed constants
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Bot configuration
BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")

# Google Sheets configuration
SPREADSHEET_ID: str = os.getenv("SPREADSHEET_ID", "")
GSPREAD_CREDENTIALS: str = os.getenv("GSPREAD_CREDENTIALS", "credentials.json")

# Bot settings
REPLY_TIMEOUT: int = int(os.getenv("REPLY_TIMEOUT", "10"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Password gate
SESSION_HOURS: int = int(os.getenv("SESSION_HOURS", "24"))
PASSWORD_SALT: str = os.getenv("PASSWORD_SALT", "commission_salt_v1")

def check_required() -> None:
    """Fail fast at start-up when a required variable is missing"""
    if not BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is required in environment variables")
    if not SPREADSHEET_ID:
        raise RuntimeError("SPREADSHEET_ID is required in environment variables")
    if SESSION_HOURS <= 0:
        raise RuntimeError("SESSION_HOURS must be a positive integer")
