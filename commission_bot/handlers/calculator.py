"""
Calculator handler module
Handles the invoice calculation flow: total, product amounts, breakdown, saving
"""

import datetime
from typing import Dict, List
from telebot import TeleBot
from telebot.types import Message, InlineKeyboardMarkup, InlineKeyboardButton, CallbackQuery
import logging

from commission_bot import sheets
from commission_bot.constants import DEFAULT_NEW_PRODUCT_PERCENTAGE, ISO_DATE_FORMAT
from commission_bot.fsm import fsm, States, is_text_in_states
from commission_bot.handlers.start import ensure_authenticated, ensure_authenticated_call
from commission_bot.models import InvoiceRecord, Product
from commission_bot.services.commission import Breakdown, build_breakdown
from commission_bot.session import sessions
from commission_bot.utils.formatters import format_currency, format_percentage
from commission_bot.utils.validators import (
    NCF_ERRORS,
    ValidationError,
    is_date,
    is_money,
    is_ncf,
    is_percentage,
    is_product_name,
    safe_parse_number,
    safe_parse_percentage,
    sanitize_ncf,
    sanitize_product_name,
)

logger = logging.getLogger(__name__)

# Bot instance
bot: TeleBot = None

MAX_SUGGESTIONS = 10

CALC_STATES = [
    States.CALC_TOTAL,
    States.CALC_SEARCH,
    States.CALC_NEW_PRODUCT_PERCENT,
    States.CALC_PRODUCT_AMOUNT,
    States.INVOICE_NCF,
    States.INVOICE_DATE,
]

def init_bot(bot_instance: TeleBot):
    """Initialize bot instance"""
    global bot
    bot = bot_instance
    register_handlers()

def register_handlers():
    """Register all handlers for this module"""
    bot.message_handler(commands=['calc'])(handle_calc)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_new')(start_new_calculation)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_total')(start_edit_total)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_add')(start_add_product)
    bot.callback_query_handler(func=lambda call: call.data.startswith('calc_pick_'))(pick_product)
    bot.callback_query_handler(func=lambda call: call.data.startswith('calc_amount_'))(start_edit_amount)
    bot.callback_query_handler(func=lambda call: call.data.startswith('calc_remove_'))(remove_product)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_create_default')(create_product_default)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_reset')(reset_calculation)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_save')(start_save_invoice)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_ncf_use')(use_suggested_ncf)
    bot.callback_query_handler(func=lambda call: call.data == 'calc_date_today')(use_today)

    bot.message_handler(
        func=lambda message: is_text_in_states(message, CALC_STATES),
        content_types=['text']
    )(handle_text_message)

def handle_text_message(message: Message):
    """Route text messages by FSM state"""
    if not ensure_authenticated(message):
        fsm.clear_state(message.from_user.id, message.chat.id)
        return

    user_state = fsm.get_state(message.from_user.id, message.chat.id)

    if user_state == States.CALC_TOTAL:
        process_total(message)
    elif user_state == States.CALC_SEARCH:
        process_search(message)
    elif user_state == States.CALC_NEW_PRODUCT_PERCENT:
        process_new_product_percent(message)
    elif user_state == States.CALC_PRODUCT_AMOUNT:
        process_product_amount(message)
    elif user_state == States.INVOICE_NCF:
        process_ncf(message)
    elif user_state == States.INVOICE_DATE:
        process_invoice_date(message)

# ---------------------------------------------------------------------------
# Breakdown panel
# ---------------------------------------------------------------------------

def _catalog() -> Dict[str, Product]:
    return {p.id: p for p in sheets.list_products()}

def compute_breakdown(user_id: int, chat_id: int) -> Breakdown:
    """Breakdown of the user's current calculation"""
    session = sessions.get(user_id, chat_id)
    rest_percentage = sheets.get_rest_percentage()
    return build_breakdown(session.to_input(rest_percentage), _catalog())

def render_breakdown(total: float, breakdown: Breakdown) -> str:
    text = f"🧾 <b>Total de la factura:</b> {format_currency(total)}\n"

    if breakdown.lines:
        text += "\n📦 <b>Productos</b>\n"
        for line in breakdown.lines:
            text += f"• {line.label}: {format_currency(line.amount)} → {format_currency(line.commission)}\n"

    text += (
        f"\n📎 Resto ({format_percentage(breakdown.rest_percentage)}): "
        f"{format_currency(breakdown.rest_amount)} → {format_currency(breakdown.rest_commission)}\n"
        f"\n💰 <b>Comisión total: {format_currency(breakdown.total_commission)}</b>"
    )

    if breakdown.over_allocated:
        text += (
            f"\n\n⚠️ Los productos suman {format_currency(breakdown.allocated_amount)}, "
            "más que el total de la factura. El resto se toma como $0.00."
        )
    return text

def calculator_keyboard(user_id: int, chat_id: int, catalog: Dict[str, Product], rest_percentage: float) -> InlineKeyboardMarkup:
    session = sessions.get(user_id, chat_id)
    keyboard = InlineKeyboardMarkup(row_width=2)
    for product_id in session.selected:
        product = catalog.get(product_id)
        if product is None:
            continue
        keyboard.add(
            InlineKeyboardButton(f"✏️ {product.name}", callback_data=f"calc_amount_{product_id}"),
            InlineKeyboardButton("🗑", callback_data=f"calc_remove_{product_id}")
        )
    keyboard.add(
        InlineKeyboardButton("➕ Agregar producto", callback_data="calc_add"),
        InlineKeyboardButton("💵 Cambiar total", callback_data="calc_total")
    )
    keyboard.add(
        InlineKeyboardButton(f"⚙️ Resto {format_percentage(rest_percentage)}", callback_data="rest_edit"),
        InlineKeyboardButton("🔄 Reiniciar", callback_data="calc_reset")
    )
    keyboard.add(InlineKeyboardButton("💾 Guardar factura", callback_data="calc_save"))
    return keyboard

def show_calculator(chat_id: int, user_id: int):
    """Send breakdown panel of the current calculation"""
    try:
        session = sessions.get(user_id, chat_id)
        catalog = _catalog()
        rest_percentage = sheets.get_rest_percentage()
        breakdown = build_breakdown(session.to_input(rest_percentage), catalog)
    except Exception as e:
        logger.error(f"Error computing breakdown: {e}")
        bot.send_message(chat_id, "❌ Error al obtener los datos")
        return

    bot.send_message(
        chat_id,
        render_breakdown(session.total, breakdown),
        reply_markup=calculator_keyboard(user_id, chat_id, catalog, rest_percentage)
    )

# ---------------------------------------------------------------------------
# Total
# ---------------------------------------------------------------------------

def handle_calc(message: Message):
    """Handle /calc command"""
    if not ensure_authenticated(message):
        return
    sessions.reset(message.from_user.id, message.chat.id)
    fsm.clear_state(message.from_user.id, message.chat.id)
    fsm.set_state(message.from_user.id, message.chat.id, States.CALC_TOTAL)
    bot.reply_to(message, "💵 Ingrese el total de la factura:")

def start_new_calculation(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    sessions.reset(call.from_user.id, call.message.chat.id)
    fsm.clear_state(call.from_user.id, call.message.chat.id)
    fsm.set_state(call.from_user.id, call.message.chat.id, States.CALC_TOTAL)
    bot.send_message(call.message.chat.id, "💵 Ingrese el total de la factura:")

def start_edit_total(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    fsm.set_state(call.from_user.id, call.message.chat.id, States.CALC_TOTAL)
    bot.send_message(call.message.chat.id, "💵 Ingrese el nuevo total de la factura:")

def process_total(message: Message):
    """Process invoice total"""
    total_str = message.text.strip()

    if not is_money(total_str):
        bot.reply_to(message, "❌ Formato inválido. Ingrese un número (ej.: 15,000 o 1500.50):")
        return

    total = safe_parse_number(total_str)
    if total <= 0:
        bot.reply_to(message, "❌ El total debe ser mayor que cero:")
        return

    sessions.get(message.from_user.id, message.chat.id).set_total(total)
    fsm.clear_state(message.from_user.id, message.chat.id)
    logger.info(f"User {message.from_user.id} set invoice total {total}")
    show_calculator(message.chat.id, message.from_user.id)

# ---------------------------------------------------------------------------
# Products in the calculation
# ---------------------------------------------------------------------------

def available_products(products: List[Product], selected: List[str], term: str = "") -> List[Product]:
    """Catalog products not yet selected, filtered by name"""
    term = term.strip().lower()
    available = [p for p in products if p.id not in selected]
    if term:
        return [p for p in available if term in p.name.lower()]
    return available[:MAX_SUGGESTIONS]

def _suggestions_keyboard(products: List[Product]) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardMarkup(row_width=2)
    keyboard.add(*[
        InlineKeyboardButton(f"{p.name} · {format_percentage(p.percentage)}", callback_data=f"calc_pick_{p.id}")
        for p in products[:MAX_SUGGESTIONS]
    ])
    return keyboard

def start_add_product(call: CallbackQuery):
    """Show product suggestions and wait for a search term"""
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)

    session = sessions.get(call.from_user.id, call.message.chat.id)
    if session.total <= 0:
        bot.send_message(call.message.chat.id, "❌ Ingrese primero el total de la factura con /calc")
        return

    try:
        suggestions = available_products(sheets.list_products(), session.selected)
    except Exception as e:
        logger.error(f"Error listing products: {e}")
        bot.send_message(call.message.chat.id, "❌ Error al obtener los productos")
        return

    fsm.set_state(call.from_user.id, call.message.chat.id, States.CALC_SEARCH)
    bot.send_message(
        call.message.chat.id,
        "🔎 Escriba el nombre del producto para buscarlo o crearlo:",
        reply_markup=_suggestions_keyboard(suggestions)
    )

def process_search(message: Message):
    """Filter products by name or offer to create a new one"""
    term = message.text.strip()
    session = sessions.get(message.from_user.id, message.chat.id)

    try:
        matches = available_products(sheets.list_products(), session.selected, term)
    except Exception as e:
        logger.error(f"Error searching products: {e}")
        bot.reply_to(message, "❌ Error al buscar productos")
        return

    if matches:
        bot.reply_to(message, "Seleccione un producto:", reply_markup=_suggestions_keyboard(matches))
        return

    name = sanitize_product_name(term)
    if not is_product_name(name):
        bot.reply_to(message, "❌ El nombre contiene caracteres no válidos. Intente otro nombre:")
        return

    fsm.set_data(message.from_user.id, message.chat.id, 'new_product_name', name)
    fsm.set_state(message.from_user.id, message.chat.id, States.CALC_NEW_PRODUCT_PERCENT)

    default = format_percentage(DEFAULT_NEW_PRODUCT_PERCENTAGE)
    keyboard = InlineKeyboardMarkup()
    keyboard.add(InlineKeyboardButton(f"Usar {default}", callback_data="calc_create_default"))
    bot.reply_to(
        message,
        f"➕ «{name}» no existe. Ingrese su porcentaje de comisión para crearlo:",
        reply_markup=keyboard
    )

def _create_and_select(chat_id: int, user_id: int, percentage: float):
    name = fsm.get_data(user_id, chat_id, 'new_product_name')
    if not name:
        fsm.clear_state(user_id, chat_id)
        return

    try:
        product = sheets.add_product(name, percentage)
    except ValidationError as e:
        bot.send_message(chat_id, f"❌ {e}")
        return
    except Exception as e:
        logger.error(f"Error creating product {name}: {e}")
        bot.send_message(chat_id, "❌ Error al crear el producto")
        fsm.clear_state(user_id, chat_id)
        return

    sessions.get(user_id, chat_id).add_product(product.id)
    ask_product_amount(chat_id, user_id, product)

def process_new_product_percent(message: Message):
    percentage_str = message.text.strip()
    if not is_percentage(percentage_str):
        bot.reply_to(message, "❌ Ingrese un porcentaje entre 0 y 100:")
        return

    percentage = safe_parse_percentage(percentage_str, DEFAULT_NEW_PRODUCT_PERCENTAGE)
    _create_and_select(message.chat.id, message.from_user.id, percentage)

def create_product_default(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    if fsm.get_state(call.from_user.id, call.message.chat.id) != States.CALC_NEW_PRODUCT_PERCENT:
        return
    _create_and_select(call.message.chat.id, call.from_user.id, DEFAULT_NEW_PRODUCT_PERCENTAGE)

def ask_product_amount(chat_id: int, user_id: int, product: Product):
    fsm.clear_state(user_id, chat_id)
    fsm.set_data(user_id, chat_id, 'product_id', product.id)
    fsm.set_state(user_id, chat_id, States.CALC_PRODUCT_AMOUNT)
    bot.send_message(
        chat_id,
        f"💵 Monto de <b>{product.name}</b> ({format_percentage(product.percentage)}):"
    )

def _select_product(call: CallbackQuery, product_id: str):
    """Add a catalog product to the calculation and ask for its amount"""
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)

    try:
        product = sheets.get_product(product_id)
    except Exception as e:
        logger.error(f"Error loading product {product_id}: {e}")
        bot.send_message(call.message.chat.id, "❌ Error al obtener el producto")
        return

    if product is None:
        bot.send_message(call.message.chat.id, "❌ Producto no encontrado")
        return

    sessions.get(call.from_user.id, call.message.chat.id).add_product(product.id)
    ask_product_amount(call.message.chat.id, call.from_user.id, product)

def pick_product(call: CallbackQuery):
    _select_product(call, call.data[len('calc_pick_'):])

def start_edit_amount(call: CallbackQuery):
    _select_product(call, call.data[len('calc_amount_'):])

def process_product_amount(message: Message):
    """Process amount allocated to a product"""
    user_id = message.from_user.id
    chat_id = message.chat.id
    amount_str = message.text.strip()

    if not is_money(amount_str):
        bot.reply_to(message, "❌ Formato inválido. Ingrese un número (ej.: 4,000):")
        return

    product_id = fsm.get_data(user_id, chat_id, 'product_id')
    if not product_id:
        fsm.clear_state(user_id, chat_id)
        return

    session = sessions.get(user_id, chat_id)
    session.set_amount(product_id, amount_str)
    fsm.clear_state(user_id, chat_id)

    show_calculator(chat_id, user_id)

def remove_product(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id, "Producto quitado")
    product_id = call.data[len('calc_remove_'):]
    sessions.get(call.from_user.id, call.message.chat.id).remove_product(product_id)
    show_calculator(call.message.chat.id, call.from_user.id)

def reset_calculation(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id, "Calculadora reiniciada")
    sessions.reset(call.from_user.id, call.message.chat.id)
    fsm.clear_state(call.from_user.id, call.message.chat.id)
    fsm.set_state(call.from_user.id, call.message.chat.id, States.CALC_TOTAL)
    bot.send_message(call.message.chat.id, "💵 Ingrese el total de la factura:")

# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------

def start_save_invoice(call: CallbackQuery):
    """Ask for NCF, suggesting the next one in sequence"""
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)

    user_id = call.from_user.id
    chat_id = call.message.chat.id
    if sessions.get(user_id, chat_id).total <= 0:
        bot.send_message(chat_id, "❌ No hay factura para guardar")
        return

    try:
        suggested = sheets.get_suggested_ncf()
    except Exception as e:
        logger.error(f"Error getting suggested NCF: {e}")
        suggested = None

    fsm.clear_state(user_id, chat_id)
    fsm.set_state(user_id, chat_id, States.INVOICE_NCF)

    keyboard = None
    if suggested:
        fsm.set_data(user_id, chat_id, 'suggested_ncf', suggested)
        keyboard = InlineKeyboardMarkup()
        keyboard.add(InlineKeyboardButton(f"Usar {suggested}", callback_data="calc_ncf_use"))

    bot.send_message(chat_id, "🧾 Ingrese el NCF de la factura:", reply_markup=keyboard)

def _accept_ncf(chat_id: int, user_id: int, ncf: str):
    fsm.set_data(user_id, chat_id, 'ncf', ncf)
    fsm.set_state(user_id, chat_id, States.INVOICE_DATE)

    keyboard = InlineKeyboardMarkup()
    keyboard.add(InlineKeyboardButton("📅 Hoy", callback_data="calc_date_today"))
    bot.send_message(chat_id, "📅 Fecha de la factura (AAAA-MM-DD) o «hoy»:", reply_markup=keyboard)

def process_ncf(message: Message):
    ncf = sanitize_ncf(message.text)
    if not is_ncf(ncf):
        bot.reply_to(message, "❌ NCF inválido. Solo letras mayúsculas y números:")
        return
    _accept_ncf(message.chat.id, message.from_user.id, ncf)

def use_suggested_ncf(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    user_id = call.from_user.id
    chat_id = call.message.chat.id
    suggested = fsm.get_data(user_id, chat_id, 'suggested_ncf')
    if fsm.get_state(user_id, chat_id) != States.INVOICE_NCF or not suggested:
        return
    _accept_ncf(chat_id, user_id, suggested)

def process_invoice_date(message: Message):
    text = message.text.strip()
    if text.lower() == "hoy":
        invoice_date = datetime.date.today().strftime(ISO_DATE_FORMAT)
    elif is_date(text):
        invoice_date = text
    else:
        bot.reply_to(message, "❌ Formato de fecha inválido (AAAA-MM-DD):")
        return
    save_invoice(message.chat.id, message.from_user.id, invoice_date)

def use_today(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    if fsm.get_state(call.from_user.id, call.message.chat.id) != States.INVOICE_DATE:
        return
    save_invoice(call.message.chat.id, call.from_user.id, datetime.date.today().strftime(ISO_DATE_FORMAT))

def build_invoice(ncf: str, invoice_date: str, total: float, breakdown: Breakdown) -> InvoiceRecord:
    return InvoiceRecord(
        ncf=ncf,
        invoice_date=invoice_date,
        total_amount=total,
        rest_amount=breakdown.rest_amount,
        rest_percentage=breakdown.rest_percentage,
        rest_commission=breakdown.rest_commission,
        total_commission=breakdown.total_commission,
        products=breakdown.invoice_lines(),
    )

def save_invoice(chat_id: int, user_id: int, invoice_date: str):
    """Store the current calculation as an invoice"""
    ncf = fsm.get_data(user_id, chat_id, 'ncf')
    session = sessions.get(user_id, chat_id)

    try:
        breakdown = compute_breakdown(user_id, chat_id)
        invoice = sheets.save_invoice(build_invoice(ncf, invoice_date, session.total, breakdown))
    except ValidationError as e:
        logger.warning(f"Invalid invoice from user {user_id}: {e}")
        errors = "❌ " + "\n❌ ".join(e.errors)
        if any(error in NCF_ERRORS for error in e.errors):
            fsm.set_state(user_id, chat_id, States.INVOICE_NCF)
            bot.send_message(chat_id, errors + "\n\nIngrese el NCF de nuevo:")
            return
        # Not fixable by another NCF: back to the breakdown panel
        fsm.clear_state(user_id, chat_id)
        bot.send_message(chat_id, errors + "\n\nCorrija los montos antes de guardar.")
        show_calculator(chat_id, user_id)
        return
    except Exception as e:
        logger.error(f"Error saving invoice: {e}")
        bot.send_message(chat_id, "❌ Error al guardar la factura")
        fsm.clear_state(user_id, chat_id)
        return

    fsm.clear_state(user_id, chat_id)
    sessions.reset(user_id, chat_id)

    keyboard = InlineKeyboardMarkup(row_width=2)
    keyboard.add(
        InlineKeyboardButton("📄 PDF", callback_data=f"inv_pdf_{invoice.id}"),
        InlineKeyboardButton("🧮 Nueva factura", callback_data="calc_new")
    )
    bot.send_message(
        chat_id,
        f"✅ Factura {invoice.ncf} guardada. Comisión: {format_currency(invoice.total_commission)}",
        reply_markup=keyboard
    )
