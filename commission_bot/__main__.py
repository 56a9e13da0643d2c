#!/usr/bin/env python3
"""
Commission Calculator Bot - Main Entry Point
"""

import logging
from telebot import TeleBot

from commission_bot.config import BOT_TOKEN, LOG_LEVEL, REPLY_TIMEOUT, check_required

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def main():
    """Initialize and start the bot"""
    check_required()

    # Initialize bot without FSM storage (using our own FSM)
    bot = TeleBot(BOT_TOKEN, parse_mode="HTML")

    # Import and initialize handlers
    from commission_bot.handlers import start, calculator, products, invoices

    # Order matters: command handlers of start (/cancel, /logout) go first
    start.init_bot(bot)
    calculator.init_bot(bot)
    products.init_bot(bot)
    invoices.init_bot(bot)

    logger.info("Bot started successfully")

    # Start polling
    try:
        bot.infinity_polling(timeout=REPLY_TIMEOUT)
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.error(f"Bot error: {e}")
        raise

if __name__ == "__main__":
    main()
