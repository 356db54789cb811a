from app.apps.image_resizer.db.crud.api_key import APIKeyDB

# Global CRUD instances - use these instead of creating new instances
api_key_db = APIKeyDB()

__all__ = [
    # Classes
    "APIKeyDB",
    # Global instances
    "api_key_db",
]
