from .status import router as status_router
from .site import router as site_router
from .assigned import router as assigned_router
from .ipcheck import router as ipcheck_router

__all__ = [
    "status_router",
    "site_router",
    "assigned_router",
    "ipcheck_router",
]
