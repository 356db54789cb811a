"""
Database models for image_resizer.
"""

from app.apps.image_resizer.db.models.api_key import ApiKey

__all__ = [
    "ApiKey",
]
