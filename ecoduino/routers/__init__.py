"""
API Routers
"""
from .auth import router as auth_router
from .devices import router as devices_router
from .greenhouses import router as greenhouses_router
from .health import router as health_router
from .metrics import router as metrics_router

__all__ = ["auth_router", "devices_router", "greenhouses_router", "health_router", "metrics_router"]
