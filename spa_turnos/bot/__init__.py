"""
Bot Module Initialization

Exports Telegram bot components for use across the application.
"""

from spa_turnos.bot.handlers import router as handlers_router
from spa_turnos.bot.webhook import (
    get_bot,
    get_dispatcher,
    router as webhook_router,
    shutdown_webhook,
    startup_webhook,
)

__all__ = [
    "webhook_router",
    "handlers_router",
    "startup_webhook",
    "shutdown_webhook",
    "get_bot",
    "get_dispatcher",
]
