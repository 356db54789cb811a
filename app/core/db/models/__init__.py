from app.core.db.models.base import BaseModel, utc_now

__all__ = [
    "BaseModel",
    "utc_now",
]
