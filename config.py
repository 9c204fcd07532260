import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        host: str,
        port: int,
        log_level: str,
        csrf_secret: str,
        cors_origins: list[str],
        uncategorized_label: str,
        percentage_places: int,
        top_categories: int,
        default_currency: str,
    ) -> None:
        self.database_url = database_url
        self.host = host
        self.port = port
        self.log_level = log_level
        self.csrf_secret = csrf_secret
        self.cors_origins = cors_origins
        self.uncategorized_label = uncategorized_label
        self.percentage_places = percentage_places
        self.top_categories = top_categories
        self.default_currency = default_currency


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    host = os.getenv("FINANCE_HOST", "127.0.0.1")
    port = int(os.getenv("FINANCE_PORT", os.getenv("PORT", "5000")))
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    csrf_secret = os.getenv(
        "FINANCE_CSRF_SECRET",
        "3f0c5d9e2b7a41c88e6f1d2a9b4c7e05a1d8f3b6c2e9470d5a8b1c4f7e2d9a36",
    )
    cors_origins = _split_origins(os.getenv("FINANCE_CORS_ORIGINS", "*"))
    uncategorized_label = os.getenv("FINANCE_UNCATEGORIZED_LABEL", "Uncategorized")
    percentage_places = int(os.getenv("FINANCE_PERCENTAGE_PLACES", "2"))
    top_categories = int(os.getenv("FINANCE_TOP_CATEGORIES", "5"))
    default_currency = os.getenv("FINANCE_DEFAULT_CURRENCY", "NOK").upper()
    return Settings(
        database_url=database_url,
        host=host,
        port=port,
        log_level=log_level,
        csrf_secret=csrf_secret,
        cors_origins=cors_origins,
        uncategorized_label=uncategorized_label,
        percentage_places=percentage_places,
        top_categories=top_categories,
        default_currency=default_currency,
    )
