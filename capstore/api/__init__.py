"""API module for capstore.

Contains versioned API routers.
"""

from capstore.api.v1 import router as v1_router

__all__ = ["v1_router"]
