"""
Telegram Webhook Configuration

Handles webhook setup and FastAPI route integration for Telegram updates.
Dispatches incoming updates to aiogram handlers.
"""

import logging
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.types import Update
from fastapi import APIRouter, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from spa_turnos.bot.handlers import router as handlers_router
from spa_turnos.config import settings

logger = logging.getLogger(__name__)

# Create FastAPI router
router = APIRouter(prefix="/telegram", tags=["telegram"])

bot: Optional[Bot] = None
dispatcher: Optional[Dispatcher] = None


def get_bot() -> Optional[Bot]:
    """
    Get or create the bot instance.

    Returns:
        The aiogram Bot, or None when no token is configured
    """
    global bot
    if bot is None and settings.telegram_bot_token:
        bot = Bot(token=settings.telegram_bot_token)
        logger.info(f"Bot instance created for token: ****{settings.telegram_bot_token[:5]}")
    return bot


def get_dispatcher() -> Dispatcher:
    """Get or create the dispatcher with the FAQ handlers registered."""
    global dispatcher
    if dispatcher is None:
        dispatcher = Dispatcher()
        dispatcher.include_router(handlers_router)
    return dispatcher


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
) -> Response:
    """
    Handle incoming Telegram webhook updates.

    Example:
        POST /telegram/webhook
        Body: Telegram Update JSON
    """
    if settings.webhook_secret_token:
        if x_telegram_bot_api_secret_token != settings.webhook_secret_token:
            logger.warning("Invalid webhook secret token received")
            raise HTTPException(status_code=403, detail="Invalid secret token")

    bot_instance = get_bot()
    if bot_instance is None:
        raise HTTPException(status_code=503, detail="Telegram bot not configured")

    try:
        update_data = await request.json()
    except ValueError as e:
        logger.error(f"Failed to parse webhook request body: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON")

    update_id = update_data.get("update_id", "unknown") if isinstance(update_data, dict) else "unknown"
    logger.info(f"Received webhook update #{update_id}")

    try:
        update = Update.model_validate(update_data)
    except ValidationError as e:
        logger.error(f"Failed to create Update object: {e}")
        raise HTTPException(status_code=400, detail="Invalid update format")

    try:
        await get_dispatcher().feed_update(bot=bot_instance, update=update)
        logger.debug(f"Successfully processed update #{update_id}")
    except Exception as e:
        # Telegram retries non-200 answers; the error is only logged
        logger.error(f"Error processing update #{update_id}: {e}", exc_info=True)

    return Response(status_code=200)


@router.get("/webhook/info")
async def get_webhook_info() -> JSONResponse:
    """Current webhook status as reported by Telegram."""
    bot_instance = get_bot()
    if bot_instance is None:
        raise HTTPException(status_code=503, detail="Telegram bot not configured")

    try:
        webhook_info = await bot_instance.get_webhook_info()
    except Exception as e:
        logger.error(f"Error getting webhook info: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=str(e))

    return JSONResponse(content={
        "url": webhook_info.url,
        "pending_update_count": webhook_info.pending_update_count,
        "last_error_date": str(webhook_info.last_error_date) if webhook_info.last_error_date else None,
        "last_error_message": webhook_info.last_error_message,
        "allowed_updates": webhook_info.allowed_updates,
    })


async def setup_webhook(webhook_url: Optional[str] = None) -> bool:
    """
    Register the webhook with Telegram.

    Args:
        webhook_url: Webhook URL (uses settings if not provided)

    Returns:
        bool: True if the webhook was set and verified
    """
    url = webhook_url or settings.telegram_webhook_url
    if not url:
        logger.warning("No webhook URL configured, skipping webhook setup")
        return False

    bot_instance = get_bot()
    if bot_instance is None:
        logger.warning("No bot token configured, skipping webhook setup")
        return False

    try:
        await bot_instance.delete_webhook(drop_pending_updates=False)
        await bot_instance.set_webhook(
            url=url,
            drop_pending_updates=False,
            secret_token=settings.webhook_secret_token,
            allowed_updates=["message"],
        )
        logger.info(f"Webhook set successfully to: {url}")

        webhook_info = await bot_instance.get_webhook_info()
    except Exception as e:
        logger.error(f"Failed to setup webhook: {e}", exc_info=True)
        return False

    if webhook_info.url != url:
        logger.error(f"Webhook verification failed. Expected: {url}, Got: {webhook_info.url}")
        return False
    return True


async def close_bot() -> None:
    """Close the bot HTTP session."""
    global bot
    if bot is None:
        return
    try:
        await bot.session.close()
        logger.info("Bot session closed successfully")
    except Exception as e:
        logger.error(f"Error closing bot session: {e}")
    finally:
        bot = None


async def startup_webhook() -> None:
    """Startup handler; call from the FastAPI lifespan."""
    get_dispatcher()
    if await setup_webhook():
        logger.info("Telegram webhook initialized successfully")
    else:
        logger.warning("Telegram webhook not initialized")


async def shutdown_webhook() -> None:
    """Shutdown handler; call from the FastAPI lifespan."""
    logger.info("Shutting down Telegram webhook...")
    await close_bot()
    logger.info("Telegram webhook shutdown complete")


__all__ = [
    "router",
    "startup_webhook",
    "shutdown_webhook",
    "get_bot",
    "get_dispatcher",
]
