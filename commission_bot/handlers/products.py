"""
Products handler module
Handles the product catalog (/products) and the rest percentage (/rest)
"""

from telebot import TeleBot
from telebot.types import Message, InlineKeyboardMarkup, InlineKeyboardButton, CallbackQuery
import logging

from commission_bot import sheets
from commission_bot.fsm import fsm, States, is_text_in_states
from commission_bot.handlers.start import ensure_authenticated, ensure_authenticated_call
from commission_bot.utils.formatters import format_percentage
from commission_bot.utils.validators import (
    ValidationError,
    is_percentage,
    is_product_name,
    safe_parse_percentage,
    sanitize_product_name,
)

logger = logging.getLogger(__name__)

# Bot instance
bot: TeleBot = None

PRODUCT_STATES = [
    States.PRODUCT_NAME,
    States.PRODUCT_PERCENT,
    States.PRODUCT_EDIT_NAME,
    States.PRODUCT_EDIT_PERCENT,
    States.REST_PERCENT,
]

def init_bot(bot_instance: TeleBot):
    """Initialize bot instance"""
    global bot
    bot = bot_instance
    register_handlers()

def register_handlers():
    """Register all handlers for this module"""
    bot.message_handler(commands=['products'])(handle_products)
    bot.message_handler(commands=['rest'])(handle_rest)
    bot.callback_query_handler(func=lambda call: call.data == 'prod_list')(show_products_callback)
    bot.callback_query_handler(func=lambda call: call.data == 'prod_new')(start_new_product)
    bot.callback_query_handler(func=lambda call: call.data.startswith('prod_view_'))(show_product)
    bot.callback_query_handler(func=lambda call: call.data.startswith('prod_name_'))(start_edit_name)
    bot.callback_query_handler(func=lambda call: call.data.startswith('prod_pct_'))(start_edit_percentage)
    bot.callback_query_handler(func=lambda call: call.data.startswith('prod_del_'))(confirm_delete_product)
    bot.callback_query_handler(func=lambda call: call.data.startswith('prod_delok_'))(delete_product)
    bot.callback_query_handler(func=lambda call: call.data == 'rest_edit')(start_edit_rest)

    bot.message_handler(
        func=lambda message: is_text_in_states(message, PRODUCT_STATES),
        content_types=['text']
    )(handle_text_message)

def handle_text_message(message: Message):
    """Route text messages by FSM state"""
    if not ensure_authenticated(message):
        fsm.clear_state(message.from_user.id, message.chat.id)
        return

    user_state = fsm.get_state(message.from_user.id, message.chat.id)

    if user_state == States.PRODUCT_NAME:
        process_product_name(message)
    elif user_state == States.PRODUCT_PERCENT:
        process_product_percent(message)
    elif user_state == States.PRODUCT_EDIT_NAME:
        process_edit_name(message)
    elif user_state == States.PRODUCT_EDIT_PERCENT:
        process_edit_percentage(message)
    elif user_state == States.REST_PERCENT:
        process_rest_percentage(message)

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def products_keyboard(products) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardMarkup(row_width=2)
    keyboard.add(*[
        InlineKeyboardButton(
            f"{'🔒 ' if p.is_default else ''}{p.name} · {format_percentage(p.percentage)}",
            callback_data=f"prod_view_{p.id}"
        )
        for p in products
    ])
    keyboard.add(InlineKeyboardButton("➕ Nuevo producto", callback_data="prod_new"))
    keyboard.add(InlineKeyboardButton("⬅️ Menú", callback_data="menu"))
    return keyboard

def send_products(chat_id: int):
    try:
        products = sheets.list_products()
    except Exception as e:
        logger.error(f"Error listing products: {e}")
        bot.send_message(chat_id, "❌ Error al obtener los productos")
        return

    bot.send_message(
        chat_id,
        f"📦 <b>Productos</b> ({len(products)})\n\n🔒 — producto predeterminado",
        reply_markup=products_keyboard(products)
    )

def handle_products(message: Message):
    """Handle /products command"""
    if not ensure_authenticated(message):
        return
    send_products(message.chat.id)

def show_products_callback(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    send_products(call.message.chat.id)

def show_product(call: CallbackQuery):
    """Show product details with edit/delete actions"""
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)

    product_id = call.data[len('prod_view_'):]
    try:
        product = sheets.get_product(product_id)
    except Exception as e:
        logger.error(f"Error loading product {product_id}: {e}")
        bot.send_message(call.message.chat.id, "❌ Error al obtener el producto")
        return

    if product is None:
        bot.send_message(call.message.chat.id, "❌ Producto no encontrado")
        return

    text = f"""📦 <b>{product.name}</b>

— Comisión: {format_percentage(product.percentage)}
— Tipo: {"predeterminado" if product.is_default else "personalizado"}"""

    keyboard = InlineKeyboardMarkup(row_width=2)
    keyboard.add(
        InlineKeyboardButton("✏️ Nombre", callback_data=f"prod_name_{product.id}"),
        InlineKeyboardButton("✏️ Porcentaje", callback_data=f"prod_pct_{product.id}")
    )
    if not product.is_default:
        keyboard.add(InlineKeyboardButton("🗑 Eliminar", callback_data=f"prod_del_{product.id}"))
    keyboard.add(InlineKeyboardButton("⬅️ Productos", callback_data="prod_list"))

    bot.send_message(call.message.chat.id, text, reply_markup=keyboard)

# ---------------------------------------------------------------------------
# New product
# ---------------------------------------------------------------------------

def start_new_product(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    fsm.clear_state(call.from_user.id, call.message.chat.id)
    fsm.set_state(call.from_user.id, call.message.chat.id, States.PRODUCT_NAME)
    bot.send_message(call.message.chat.id, "📝 Nombre del nuevo producto:")

def process_product_name(message: Message):
    name = sanitize_product_name(message.text)

    if not is_product_name(name):
        bot.reply_to(message, "❌ El nombre contiene caracteres no válidos. Ingrese otro nombre:")
        return

    fsm.set_data(message.from_user.id, message.chat.id, 'name', name)
    fsm.set_state(message.from_user.id, message.chat.id, States.PRODUCT_PERCENT)
    bot.reply_to(message, f"📊 Porcentaje de comisión de <b>{name}</b> (0-100):")

def process_product_percent(message: Message):
    user_id = message.from_user.id
    chat_id = message.chat.id
    percentage_str = message.text.strip()

    if not is_percentage(percentage_str):
        bot.reply_to(message, "❌ Ingrese un porcentaje entre 0 y 100:")
        return

    name = fsm.get_data(user_id, chat_id, 'name')
    try:
        product = sheets.add_product(name, safe_parse_percentage(percentage_str))
        bot.reply_to(message, f"✅ Producto {product.name} ({format_percentage(product.percentage)}) creado")
    except ValidationError as e:
        bot.reply_to(message, f"❌ {e}")
    except Exception as e:
        logger.error(f"Error adding product {name}: {e}")
        bot.reply_to(message, "❌ Error al crear el producto")
    finally:
        fsm.clear_state(user_id, chat_id)

# ---------------------------------------------------------------------------
# Edit product
# ---------------------------------------------------------------------------

def start_edit_name(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    fsm.clear_state(call.from_user.id, call.message.chat.id)
    fsm.set_data(call.from_user.id, call.message.chat.id, 'product_id', call.data[len('prod_name_'):])
    fsm.set_state(call.from_user.id, call.message.chat.id, States.PRODUCT_EDIT_NAME)
    bot.send_message(call.message.chat.id, "📝 Nuevo nombre del producto:")

def start_edit_percentage(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    fsm.clear_state(call.from_user.id, call.message.chat.id)
    fsm.set_data(call.from_user.id, call.message.chat.id, 'product_id', call.data[len('prod_pct_'):])
    fsm.set_state(call.from_user.id, call.message.chat.id, States.PRODUCT_EDIT_PERCENT)
    bot.send_message(call.message.chat.id, "📊 Nuevo porcentaje de comisión (0-100):")

def _apply_update(message: Message, **changes):
    user_id = message.from_user.id
    chat_id = message.chat.id
    product_id = fsm.get_data(user_id, chat_id, 'product_id')

    try:
        if sheets.update_product(product_id, **changes):
            bot.reply_to(message, "✅ Producto actualizado")
        else:
            bot.reply_to(message, "❌ Producto no encontrado")
    except ValidationError as e:
        bot.reply_to(message, f"❌ {e}")
    except Exception as e:
        logger.error(f"Error updating product {product_id}: {e}")
        bot.reply_to(message, "❌ Error al actualizar el producto")
    finally:
        fsm.clear_state(user_id, chat_id)

def process_edit_name(message: Message):
    name = sanitize_product_name(message.text)
    if not is_product_name(name):
        bot.reply_to(message, "❌ El nombre contiene caracteres no válidos. Ingrese otro nombre:")
        return
    _apply_update(message, name=name)

def process_edit_percentage(message: Message):
    percentage_str = message.text.strip()
    if not is_percentage(percentage_str):
        bot.reply_to(message, "❌ Ingrese un porcentaje entre 0 y 100:")
        return
    _apply_update(message, percentage=safe_parse_percentage(percentage_str))

# ---------------------------------------------------------------------------
# Delete product
# ---------------------------------------------------------------------------

def confirm_delete_product(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)

    product_id = call.data[len('prod_del_'):]
    keyboard = InlineKeyboardMarkup(row_width=2)
    keyboard.add(
        InlineKeyboardButton("🗑 Sí, eliminar", callback_data=f"prod_delok_{product_id}"),
        InlineKeyboardButton("Cancelar", callback_data=f"prod_view_{product_id}")
    )
    bot.send_message(
        call.message.chat.id,
        "¿Eliminar producto?\n\nEsta acción no se puede deshacer.",
        reply_markup=keyboard
    )

def delete_product(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return

    product_id = call.data[len('prod_delok_'):]
    try:
        if sheets.delete_product(product_id):
            bot.answer_callback_query(call.id, "🗑 Producto eliminado")
            bot.edit_message_text("🗑 Producto eliminado", call.message.chat.id, call.message.message_id)
        else:
            bot.answer_callback_query(call.id, "❌ Los productos predeterminados no se pueden eliminar")
    except Exception as e:
        logger.error(f"Error deleting product {product_id}: {e}")
        bot.answer_callback_query(call.id, "❌ Error al eliminar el producto")

# ---------------------------------------------------------------------------
# Rest percentage
# ---------------------------------------------------------------------------

def _ask_rest_percentage(chat_id: int, user_id: int):
    try:
        current = sheets.get_rest_percentage()
    except Exception as e:
        logger.error(f"Error reading rest percentage: {e}")
        bot.send_message(chat_id, "❌ Error al obtener la configuración")
        return

    fsm.clear_state(user_id, chat_id)
    fsm.set_state(user_id, chat_id, States.REST_PERCENT)
    bot.send_message(
        chat_id,
        f"⚙️ Porcentaje actual del resto: {format_percentage(current)}\n\nIngrese el nuevo porcentaje (0-100):"
    )

def handle_rest(message: Message):
    """Handle /rest command"""
    if not ensure_authenticated(message):
        return
    _ask_rest_percentage(message.chat.id, message.from_user.id)

def start_edit_rest(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    _ask_rest_percentage(call.message.chat.id, call.from_user.id)

def process_rest_percentage(message: Message):
    percentage_str = message.text.strip()
    if not is_percentage(percentage_str):
        bot.reply_to(message, "❌ Ingrese un porcentaje entre 0 y 100:")
        return

    try:
        percentage = sheets.update_rest_percentage(safe_parse_percentage(percentage_str))
        bot.reply_to(message, f"✅ Porcentaje del resto: {format_percentage(percentage)}")
    except Exception as e:
        logger.error(f"Error updating rest percentage: {e}")
        bot.reply_to(message, "❌ Error al guardar el porcentaje")
    finally:
        fsm.clear_state(message.from_user.id, message.chat.id)
