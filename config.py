import os
import logging

logger = logging.getLogger(__name__)


def _first_env(*names: str, default: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


class Config:
    """Application configuration."""
    POCKETBASE_URL = _first_env(
        "POCKETBASE_URL",
        "POCKETBASE_INTERNAL_URL",
        "NEXT_PUBLIC_POCKETBASE_URL",
        default="http://127.0.0.1:8090",
    ).rstrip("/")
    POCKETBASE_TIMEOUT = int(os.getenv("POCKETBASE_TIMEOUT", "15"))
    POCKETBASE_RETRIES = int(os.getenv("POCKETBASE_RETRIES", "1"))
    POCKETBASE_ADMIN_EMAIL = os.getenv("POCKETBASE_ADMIN_EMAIL") or os.getenv("ADMIN_EMAIL")
    POCKETBASE_ADMIN_PASSWORD = os.getenv("POCKETBASE_ADMIN_PASSWORD") or os.getenv("ADMIN_PASSWORD")

    REVALIDATION_API_KEY = os.getenv("REVALIDATION_API_KEY")
    POCKETBASE_WEBHOOK_SECRET = os.getenv("POCKETBASE_WEBHOOK_SECRET")
    CRON_SECRET = os.getenv("CRON_SECRET")

    MIGRATION_STATE_FILE = os.getenv(
        "MIGRATION_STATE_FILE",
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "migrations", "applied.json"),
    )

    @classmethod
    def validate(cls) -> None:
        if not cls.REVALIDATION_API_KEY:
            logger.warning("REVALIDATION_API_KEY not set - manual revalidation API is unauthenticated")
        if not cls.POCKETBASE_WEBHOOK_SECRET:
            logger.warning("POCKETBASE_WEBHOOK_SECRET not set - webhook signature check disabled")
        if not (cls.POCKETBASE_ADMIN_EMAIL and cls.POCKETBASE_ADMIN_PASSWORD):
            logger.warning("PocketBase admin credentials not set - migrations and seeding unavailable")
