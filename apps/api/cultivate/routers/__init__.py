from .artifacts import router as artifacts_router
from .contacts import router as contacts_router
from .suggestions import router as suggestions_router

ROUTERS = (artifacts_router, contacts_router, suggestions_router)

__all__ = [
    "ROUTERS",
    "artifacts_router",
    "contacts_router",
    "suggestions_router",
]
