from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    APP_NAME: str = "Expense API"
    ENV: str = "dev"

    # Default SQLite file stored next to the package so the path does not depend on CWD
    _default_db_path = Path(__file__).resolve().parents[2] / "db.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"

    CORS_ORIGINS: list[str] = ["*"]
    TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"

    # Upper bound on occurrences materialized for one rule in a single run
    RECURRING_GENERATION_CAP: int = 100

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="EXPENSE_", case_sensitive=False)


settings = Settings()
