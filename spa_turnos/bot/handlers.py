"""
Telegram Bot Message Handlers

Implements aiogram handlers for the FAQ bot. Answers come from the scripted
chat module; the service catalog is read from the REST backend.
"""

import asyncio
import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import KeyboardButton, Message, ReplyKeyboardMarkup

from spa_turnos.api.http import ApiClient
from spa_turnos.api.session import SessionContext
from spa_turnos.services import chat
from spa_turnos.services.catalog import CatalogService

logger = logging.getLogger(__name__)

# Create router for handlers
router = Router(name="faq_router")


def quick_reply_keyboard() -> ReplyKeyboardMarkup:
    """One button per quick reply."""
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=reply)] for reply in chat.QUICK_REPLIES],
        resize_keyboard=True,
    )


def format_catalog(categories) -> str:
    if not categories:
        return "Por el momento no hay servicios cargados."
    lines = ["💆‍♀️ Nuestros servicios:"]
    for category, services in categories.items():
        lines.append(f"\n{category}")
        lines.extend(f"• {s.nombre}: ${s.precio:,.0f}" for s in services)
    return "\n".join(lines)


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    """Greet the user and show the quick replies."""
    try:
        user = message.from_user
        logger.info(f"User {user.id} ({user.username}) started the bot")
        name = f" {user.first_name}" if user.first_name else ""
        await message.answer(
            f"¡Hola{name}! Soy el asistente virtual de SPA Sentirse Bien. "
            f"¿En qué puedo ayudarte hoy?",
            reply_markup=quick_reply_keyboard(),
        )
    except Exception as e:
        logger.error(f"Error in start command: {e}", exc_info=True)
        await message.answer(chat.greeting())


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    """List the commands and the questions the bot can answer."""
    try:
        help_message = "\n".join([
            "🤖 Ayuda",
            "",
            "/start - Comenzar",
            "/help - Mostrar esta ayuda",
            "/servicios - Ver el catálogo de servicios",
            "",
            "Preguntas frecuentes:",
            *(f"• {reply}" for reply in chat.QUICK_REPLIES),
        ])
        await message.answer(help_message, reply_markup=quick_reply_keyboard())
    except Exception as e:
        logger.error(f"Error in help command: {e}", exc_info=True)
        await message.answer("¡Estoy para ayudarte! Elegí una de las preguntas frecuentes.")


@router.message(Command("servicios"))
async def cmd_services(message: Message) -> None:
    """Show the service catalog grouped by category."""
    catalog = CatalogService(ApiClient(SessionContext()))
    result = await asyncio.to_thread(catalog.grouped)
    if not result["success"]:
        logger.error(f"Catalog unavailable for bot: {result['error']}")
        await message.answer(f"{result['message']}. Probá de nuevo en unos minutos.")
        return
    await message.answer(format_catalog(result["categories"]))


@router.message(F.text)
async def handle_text_message(message: Message) -> None:
    """Answer free text with the matching quick reply or the fallback."""
    text = message.text or ""
    logger.info(f"Received message from user {message.from_user.id}: {text[:100]}")
    try:
        reply = chat.answer(text)
        await message.answer(reply.render(), reply_markup=quick_reply_keyboard())
    except Exception as e:
        logger.error(f"Error answering message: {e}", exc_info=True)
        await message.answer(chat.FALLBACK_ANSWER)
