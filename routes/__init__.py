"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.quotes import router as quotes_router
from routes.pool_codes import router as pool_codes_router

__all__ = [
    "quotes_router",
    "pool_codes_router",
]
