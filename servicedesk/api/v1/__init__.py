from fastapi import FastAPI

from .deps import get_db, get_request_context  # re-export for external use
from .tickets import ticket_router
from .dashboard import dashboard_router
from .employees import employee_router


def register_routes(app: FastAPI) -> None:
    app.include_router(ticket_router)
    app.include_router(dashboard_router)
    app.include_router(employee_router)

__all__ = [
    "get_db",
    "get_request_context",
    "ticket_router",
    "dashboard_router",
    "employee_router",
    "register_routes",
]
