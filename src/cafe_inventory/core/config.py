import os
from typing import Optional

# In a real deployment, load from environment variables or a .env file
REMOTE_DATABASE_URL: Optional[str] = os.getenv("REMOTE_DATABASE_URL") or None
SNAPSHOT_DIR: str = os.getenv("SNAPSHOT_DIR", "./.cafe_inventory")

AUTO_SYNC_ENABLED: bool = os.getenv("AUTO_SYNC_ENABLED", "true").lower() in ("true", "1", "t")
AUTO_SYNC_INTERVAL_MINUTES: int = int(os.getenv("AUTO_SYNC_INTERVAL_MINUTES", "15"))
TOMBSTONE_RETENTION_DAYS: int = int(os.getenv("TOMBSTONE_RETENTION_DAYS", "30"))
GATEWAY_TIMEOUT_SECONDS: float = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "30"))
SEED_DEFAULT_CATALOG: bool = os.getenv("SEED_DEFAULT_CATALOG", "true").lower() in ("true", "1", "t")

EMAILJS_API_URL: str = os.getenv("EMAILJS_API_URL", "https://api.emailjs.com/api/v1.0/email/send")
ORDER_EMAIL_RECIPIENT: str = os.getenv("ORDER_EMAIL_RECIPIENT", "orders@example.com")

TORTOISE_MODELS = [
    "cafe_inventory.features.catalog.models",
    "cafe_inventory.features.counting.models",
    "cafe_inventory.features.sync.models",
    "aerich.models",  # For Aerich migrations
]


def tortoise_config(db_url: Optional[str] = None) -> dict:
    """Tortoise ORM config for the remote relational store."""
    return {
        "connections": {"default": db_url or REMOTE_DATABASE_URL or "sqlite://:memory:"},
        "apps": {
            "models": {
                "models": TORTOISE_MODELS,
                "default_connection": "default",
            }
        },
        "use_tz": True,
        "timezone": "UTC",
    }


# Read by aerich (see [tool.aerich] in pyproject.toml)
TORTOISE_ORM = tortoise_config()
