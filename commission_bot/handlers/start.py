"""
Start handler module
Handles /start, the password gate, /logout, /cancel and the main menu
"""

from telebot import TeleBot
from telebot.types import Message, InlineKeyboardMarkup, InlineKeyboardButton, CallbackQuery
import logging

from commission_bot.fsm import fsm, States, is_text_in_states
from commission_bot.services import auth

logger = logging.getLogger(__name__)

# Get bot instance from main module
bot: TeleBot = None

PASSWORD_STATES = [States.PASSWORD_SETUP, States.PASSWORD_CONFIRM, States.PASSWORD_LOGIN]

HELP_TEXT = """🧮 <b>Calculadora de Comisiones</b>

/calc — nueva factura
/products — catálogo de productos
/rest — porcentaje del resto
/history — facturas guardadas
/cancel — cancelar la operación actual
/logout — cerrar sesión"""

def init_bot(bot_instance: TeleBot):
    """Initialize bot instance"""
    global bot
    bot = bot_instance
    register_handlers()

def register_handlers():
    """Register all handlers for this module"""
    bot.message_handler(commands=['start'])(handle_start)
    bot.message_handler(commands=['help'])(handle_help)
    bot.message_handler(commands=['logout'])(handle_logout)
    bot.message_handler(commands=['cancel'])(handle_cancel)
    bot.callback_query_handler(func=lambda call: call.data == 'menu')(handle_menu_callback)
    bot.message_handler(
        func=lambda message: is_text_in_states(message, PASSWORD_STATES),
        content_types=['text']
    )(handle_password_message)

def ensure_authenticated(message: Message) -> bool:
    """Check session; ask to log in when there is none"""
    if auth.gate.is_authenticated(message.from_user.id):
        return True
    bot.reply_to(message, "🔒 Sesión cerrada. Use /start para ingresar.")
    return False

def ensure_authenticated_call(call: CallbackQuery) -> bool:
    if auth.gate.is_authenticated(call.from_user.id):
        return True
    bot.answer_callback_query(call.id, "🔒 Sesión cerrada. Use /start para ingresar.")
    return False

def main_menu_keyboard() -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardMarkup(row_width=1)
    keyboard.add(
        InlineKeyboardButton("🧮 Nueva factura", callback_data="calc_new"),
        InlineKeyboardButton("📦 Productos", callback_data="prod_list"),
        InlineKeyboardButton("📚 Historial", callback_data="inv_list")
    )
    return keyboard

def show_main_menu(chat_id: int):
    bot.send_message(chat_id, HELP_TEXT, reply_markup=main_menu_keyboard())

def handle_start(message: Message):
    """Handle /start command"""
    user_id = message.from_user.id
    chat_id = message.chat.id

    if auth.gate.is_authenticated(user_id):
        fsm.clear_state(user_id, chat_id)
        show_main_menu(chat_id)
        return

    try:
        configured = auth.has_password()
    except Exception as e:
        logger.error(f"Error checking password: {e}")
        bot.reply_to(message, "❌ Error al verificar la contraseña")
        return

    if configured:
        fsm.set_state(user_id, chat_id, States.PASSWORD_LOGIN)
        bot.reply_to(message, "🔒 Ingrese la contraseña:")
    else:
        fsm.set_state(user_id, chat_id, States.PASSWORD_SETUP)
        bot.reply_to(
            message,
            "🔑 <b>Configurar contraseña</b>\n\n"
            f"Cree una contraseña de al menos {auth.MIN_PASSWORD_LENGTH} caracteres:"
        )

def handle_help(message: Message):
    """Handle /help command"""
    bot.reply_to(message, HELP_TEXT)

def handle_logout(message: Message):
    """Handle /logout command"""
    fsm.clear_state(message.from_user.id, message.chat.id)
    if auth.gate.close(message.from_user.id):
        bot.reply_to(message, "👋 Sesión cerrada")
    else:
        bot.reply_to(message, "No hay sesión abierta")

def handle_cancel(message: Message):
    """Handle /cancel command - cancel current state"""
    user_state = fsm.get_state(message.from_user.id, message.chat.id)

    if user_state:
        fsm.clear_state(message.from_user.id, message.chat.id)
        bot.reply_to(message, "❌ Operación cancelada")
        logger.info(f"User {message.from_user.id} canceled state: {user_state}")
    else:
        bot.reply_to(message, "No hay operaciones activas para cancelar")

def handle_menu_callback(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    fsm.clear_state(call.from_user.id, call.message.chat.id)
    show_main_menu(call.message.chat.id)

def handle_password_message(message: Message):
    """Route password steps"""
    user_state = fsm.get_state(message.from_user.id, message.chat.id)

    if user_state == States.PASSWORD_SETUP:
        process_setup_password(message)
    elif user_state == States.PASSWORD_CONFIRM:
        process_confirm_password(message)
    elif user_state == States.PASSWORD_LOGIN:
        process_login(message)

def _forget_password_message(message: Message):
    """Passwords should not stay in the chat history"""
    try:
        bot.delete_message(message.chat.id, message.message_id)
    except Exception as e:
        logger.debug(f"Could not delete password message: {e}")

def process_setup_password(message: Message):
    password = message.text
    _forget_password_message(message)

    if len(password) < auth.MIN_PASSWORD_LENGTH:
        bot.send_message(
            message.chat.id,
            f"❌ La contraseña debe tener al menos {auth.MIN_PASSWORD_LENGTH} caracteres. Intente de nuevo:"
        )
        return

    fsm.set_data(message.from_user.id, message.chat.id, 'password', password)
    fsm.set_state(message.from_user.id, message.chat.id, States.PASSWORD_CONFIRM)
    bot.send_message(message.chat.id, "🔁 Confirme la contraseña:")

def process_confirm_password(message: Message):
    user_id = message.from_user.id
    chat_id = message.chat.id
    confirm = message.text
    _forget_password_message(message)

    password = fsm.get_data(user_id, chat_id, 'password') or ""
    error = auth.validate_new_password(password, confirm)
    if error:
        fsm.clear_state(user_id, chat_id)
        fsm.set_state(user_id, chat_id, States.PASSWORD_SETUP)
        bot.send_message(chat_id, f"❌ {error}. Cree la contraseña de nuevo:")
        return

    try:
        auth.setup_password(password)
    except Exception as e:
        logger.error(f"Error setting up password: {e}")
        bot.send_message(chat_id, "❌ Error al configurar la contraseña")
        fsm.clear_state(user_id, chat_id)
        return

    fsm.clear_state(user_id, chat_id)
    auth.gate.open(user_id)
    bot.send_message(chat_id, "✅ Contraseña configurada correctamente")
    show_main_menu(chat_id)

def process_login(message: Message):
    user_id = message.from_user.id
    chat_id = message.chat.id
    password = message.text
    _forget_password_message(message)

    try:
        valid = auth.check_password(password)
    except Exception as e:
        logger.error(f"Error verifying password: {e}")
        bot.send_message(chat_id, "❌ Error al verificar la contraseña")
        return

    if not valid:
        logger.warning(f"Wrong password from user {user_id}")
        bot.send_message(chat_id, "❌ Contraseña incorrecta. Intente de nuevo:")
        return

    fsm.clear_state(user_id, chat_id)
    auth.gate.open(user_id)
    bot.send_message(chat_id, "¡Bienvenido! 👋")
    show_main_menu(chat_id)
