from app.apps.image_resizer.routers.api_keys import (
    router as api_keys_router,
    validation_router,
)
from app.apps.image_resizer.routers.internal import router as internal_router
from app.apps.image_resizer.routers.plugin import router as plugin_router

__all__ = [
    "api_keys_router",
    "internal_router",
    "plugin_router",
    "validation_router",
]
