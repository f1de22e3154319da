"""
Routes Module Initialization

Exports the HTTP routers mounted by the application.
"""

from spa_turnos.routes.admin import router as admin_router
from spa_turnos.routes.auth import router as auth_router
from spa_turnos.routes.booking import router as booking_router
from spa_turnos.routes.catalog import router as catalog_router
from spa_turnos.routes.chat import router as chat_router
from spa_turnos.routes.deps import SessionExpired, session_expired_handler
from spa_turnos.routes.turnos import professional_router
from spa_turnos.routes.turnos import router as turnos_router

routers = [
    auth_router,
    catalog_router,
    booking_router,
    turnos_router,
    professional_router,
    admin_router,
    chat_router,
]

__all__ = [
    "routers",
    "SessionExpired",
    "session_expired_handler",
]
