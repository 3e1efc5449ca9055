import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    env: str
    database_url: str
    default_page_size: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _default_database_url() -> str:
    db_path = _getenv("DB_PATH", os.path.join("database", "customers.db"))
    return f"sqlite:///{db_path}"


def load_settings() -> Settings:
    return Settings(
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL") or _default_database_url(),
        default_page_size=int(_getenv("DEFAULT_PAGE_SIZE", "10")),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "DEFAULT_PAGE_SIZE": s.default_page_size,
    }
