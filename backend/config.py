from pathlib import Path

from pydantic_settings import BaseSettings


def _load_version() -> str:
    version_path = Path(__file__).resolve().parent / "VERSION"
    try:
        return version_path.read_text().strip()
    except FileNotFoundError:
        return "0.1.0"


class Settings(BaseSettings):
    """Application configuration using Pydantic settings."""

    # Database
    DATABASE_URL: str = "sqlite:///./data/ipcheck.db"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Application
    APP_NAME: str = "IP Check"
    APP_VERSION: str = _load_version()
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Reachability probing ───────────────────────────────────────────
    PING_COUNT: int = 1
    PING_TIMEOUT_SECONDS: float = 2.0

    # ── Reconciliation view client ─────────────────────────────────────
    INVENTORY_API_URL: str = "http://localhost:8070"
    INVENTORY_API_TIMEOUT_SECONDS: float = 120.0  # a full /24 sweep is slow

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
