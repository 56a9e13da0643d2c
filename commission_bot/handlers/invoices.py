"""
Invoices handler module
Handles invoice history: monthly summary, details, PDF/CSV export, deletion
"""

import os
from io import BytesIO
import tempfile
from telebot import TeleBot
from telebot.types import Message, InlineKeyboardMarkup, InlineKeyboardButton, CallbackQuery
import logging

from commission_bot import sheets
from commission_bot.handlers.start import ensure_authenticated, ensure_authenticated_call
from commission_bot.models import InvoiceRecord
from commission_bot.services.export import (
    build_invoice_pdf,
    export_invoices_csv,
    pdf_filename,
    summarize_by_month,
)
from commission_bot.utils.formatters import format_currency, format_date, format_percentage

logger = logging.getLogger(__name__)

# Bot instance
bot: TeleBot = None

RECENT_INVOICES = 10
SUMMARY_MONTHS = 3

def init_bot(bot_instance: TeleBot):
    """Initialize bot instance"""
    global bot
    bot = bot_instance
    register_handlers()

def register_handlers():
    """Register all handlers for this module"""
    bot.message_handler(commands=['history'])(handle_history)
    bot.callback_query_handler(func=lambda call: call.data == 'inv_list')(show_history_callback)
    bot.callback_query_handler(func=lambda call: call.data == 'inv_csv')(export_csv)
    bot.callback_query_handler(func=lambda call: call.data.startswith('inv_view_'))(show_invoice)
    bot.callback_query_handler(func=lambda call: call.data.startswith('inv_pdf_'))(send_invoice_pdf)
    bot.callback_query_handler(func=lambda call: call.data.startswith('inv_del_'))(confirm_delete_invoice)
    bot.callback_query_handler(func=lambda call: call.data.startswith('inv_delok_'))(delete_invoice)

def render_history(invoices) -> str:
    if not invoices:
        return "📚 <b>Historial</b>\n\nNo hay facturas guardadas"

    text = "📚 <b>Historial</b>\n"
    for month in summarize_by_month(invoices)[:SUMMARY_MONTHS]:
        text += (
            f"\n📅 <b>{month.label}</b>: {month.invoices} facturas\n"
            f"   💵 Facturado: {format_currency(month.total_amount)}\n"
            f"   💰 Comisión: {format_currency(month.total_commission)}\n"
        )
    text += f"\nÚltimas {min(len(invoices), RECENT_INVOICES)} facturas:"
    return text

def history_keyboard(invoices) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardMarkup(row_width=1)
    for inv in invoices[:RECENT_INVOICES]:
        keyboard.add(InlineKeyboardButton(
            f"{inv.ncf} · {format_date(inv.invoice_date)} · {format_currency(inv.total_commission)}",
            callback_data=f"inv_view_{inv.id}"
        ))
    if invoices:
        keyboard.add(InlineKeyboardButton("📄 Exportar CSV", callback_data="inv_csv"))
    keyboard.add(InlineKeyboardButton("⬅️ Menú", callback_data="menu"))
    return keyboard

def send_history(chat_id: int):
    try:
        invoices = sheets.list_invoices()
    except Exception as e:
        logger.error(f"Error listing invoices: {e}")
        bot.send_message(chat_id, "❌ Error al obtener las facturas")
        return

    bot.send_message(chat_id, render_history(invoices), reply_markup=history_keyboard(invoices))

def handle_history(message: Message):
    """Handle /history command"""
    if not ensure_authenticated(message):
        return
    send_history(message.chat.id)

def show_history_callback(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)
    send_history(call.message.chat.id)

def render_invoice(invoice: InvoiceRecord) -> str:
    text = f"""🧾 <b>Factura {invoice.ncf}</b>

📅 Fecha: {format_date(invoice.invoice_date)}
💵 Total: {format_currency(invoice.total_amount)}
"""
    if invoice.products:
        text += "\n📦 <b>Productos</b>\n"
        for line in invoice.products:
            text += (
                f"• {line.name} ({format_percentage(line.percentage)}): "
                f"{format_currency(line.amount)} → {format_currency(line.commission)}\n"
            )
    text += (
        f"\n📎 Resto ({format_percentage(invoice.rest_percentage)}): "
        f"{format_currency(invoice.rest_amount)} → {format_currency(invoice.rest_commission)}\n"
        f"\n💰 <b>Comisión total: {format_currency(invoice.total_commission)}</b>"
    )
    return text

def _load_invoice(call: CallbackQuery, invoice_id: str):
    try:
        invoice = sheets.get_invoice(invoice_id)
    except Exception as e:
        logger.error(f"Error loading invoice {invoice_id}: {e}")
        bot.answer_callback_query(call.id, "❌ Error al obtener la factura")
        return None

    if invoice is None:
        bot.answer_callback_query(call.id, "❌ Factura no encontrada")
    return invoice

def show_invoice(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return

    invoice = _load_invoice(call, call.data[len('inv_view_'):])
    if invoice is None:
        return
    bot.answer_callback_query(call.id)

    keyboard = InlineKeyboardMarkup(row_width=2)
    keyboard.add(
        InlineKeyboardButton("📄 PDF", callback_data=f"inv_pdf_{invoice.id}"),
        InlineKeyboardButton("🗑 Eliminar", callback_data=f"inv_del_{invoice.id}")
    )
    keyboard.add(InlineKeyboardButton("⬅️ Historial", callback_data="inv_list"))
    bot.send_message(call.message.chat.id, render_invoice(invoice), reply_markup=keyboard)

def send_invoice_pdf(call: CallbackQuery):
    """Send saved invoice as PDF document"""
    if not ensure_authenticated_call(call):
        return

    invoice = _load_invoice(call, call.data[len('inv_pdf_'):])
    if invoice is None:
        return
    bot.answer_callback_query(call.id)

    try:
        pdf_bytes = build_invoice_pdf(invoice)
        bot.send_document(
            call.message.chat.id,
            BytesIO(pdf_bytes),
            caption=f"📄 Factura {invoice.ncf}",
            visible_file_name=pdf_filename(invoice)
        )
    except Exception as e:
        logger.error(f"Error exporting invoice {invoice.id} to PDF: {e}")
        bot.send_message(call.message.chat.id, "❌ Error al generar el PDF")

def confirm_delete_invoice(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)

    invoice_id = call.data[len('inv_del_'):]
    keyboard = InlineKeyboardMarkup(row_width=2)
    keyboard.add(
        InlineKeyboardButton("🗑 Sí, eliminar", callback_data=f"inv_delok_{invoice_id}"),
        InlineKeyboardButton("Cancelar", callback_data=f"inv_view_{invoice_id}")
    )
    bot.send_message(
        call.message.chat.id,
        "¿Eliminar factura?\n\nEsta acción no se puede deshacer. La factura será eliminada permanentemente.",
        reply_markup=keyboard
    )

def delete_invoice(call: CallbackQuery):
    if not ensure_authenticated_call(call):
        return

    invoice_id = call.data[len('inv_delok_'):]
    try:
        if sheets.delete_invoice(invoice_id):
            bot.answer_callback_query(call.id, "🗑 Factura eliminada")
            bot.edit_message_text("🗑 Factura eliminada", call.message.chat.id, call.message.message_id)
        else:
            bot.answer_callback_query(call.id, "❌ Factura no encontrada")
    except Exception as e:
        logger.error(f"Error deleting invoice {invoice_id}: {e}")
        bot.answer_callback_query(call.id, "❌ Error al eliminar la factura")

def export_csv(call: CallbackQuery):
    """Export invoice history to CSV"""
    if not ensure_authenticated_call(call):
        return
    bot.answer_callback_query(call.id)

    try:
        invoices = sheets.list_invoices()

        if not invoices:
            bot.send_message(call.message.chat.id, "📄 No hay facturas para exportar")
            return

        with tempfile.NamedTemporaryFile(delete=False, suffix='.csv') as tmp:
            temp_path = tmp.name

        try:
            export_invoices_csv(invoices, temp_path)
            with open(temp_path, 'rb') as csvfile:
                bot.send_document(
                    call.message.chat.id,
                    csvfile,
                    caption="📄 Historial de facturas"
                )
        finally:
            os.unlink(temp_path)

    except Exception as e:
        logger.error(f"Error exporting CSV: {e}")
        bot.send_message(call.message.chat.id, "❌ Error al exportar los datos")
