import os


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def is_production() -> bool:
    """Detects if running in production via PRODUCTION variable"""
    return _as_bool(os.getenv("PRODUCTION", "false"))


def get_database_url() -> str:
    """Returns SQLAlchemy database URL based on environment"""
    if is_production():
        return os.getenv("DATABASE_URL_PROD") or os.getenv("DATABASE_URL")
    return os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./bakery.db")


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_format() -> str:
    """json (default) or text for local development"""
    return os.getenv("LOG_FORMAT", "json").strip().lower()


def get_bcrypt_rounds() -> int:
    return int(os.getenv("BCRYPT_ROUNDS", "12"))


def get_eur_to_syp_rate() -> float:
    """Exchange rate used when an amount is only known in EUR"""
    return float(os.getenv("EUR_TO_SYP_RATE", "15000"))


def is_auto_scheduling_enabled() -> bool:
    """Confirming an order creates a scheduling draft when enabled"""
    return _as_bool(os.getenv("AUTO_SCHEDULING_ENABLED", "true"))


def is_rate_limit_enabled() -> bool:
    return _as_bool(os.getenv("RATE_LIMIT_ENABLED", "true"))


def get_login_rate_limit() -> str:
    return os.getenv("LOGIN_RATE_LIMIT", "10/minute")


def get_cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
