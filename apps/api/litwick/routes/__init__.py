"""Route modules."""

from .accounts import router as accounts_router
from .jobs import router as jobs_router
from .payments import router as payments_router

__all__ = ["accounts_router", "jobs_router", "payments_router"]
