import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        session_secret: str,
        csrf_secret: str,
        session_max_age_secs: int,
        view_cache_ttl_secs: float,
        log_level: str,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.session_secret = session_secret
        self.csrf_secret = csrf_secret
        self.session_max_age_secs = session_max_age_secs
        self.view_cache_ttl_secs = view_cache_ttl_secs
        self.log_level = log_level
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("EXPENSES_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "expenses.db"
    database_url = os.getenv("EXPENSES_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("EXPENSES_TIMEZONE", "UTC")
    session_secret = os.getenv(
        "EXPENSES_SESSION_SECRET",
        "3f0d9c7b1e2a48c6a5d4e9b8c7f6a1d2e3b4c5d6a7f8e9d0c1b2a3f4e5d6c7b8",
    )
    csrf_secret = os.getenv(
        "EXPENSES_CSRF_SECRET",
        "ebf511a733bdc213d6ccc715d338ad1c05bef4ad0ab32bb7eb60bb90f382380a",
    )
    session_max_age_secs = int(
        os.getenv("EXPENSES_SESSION_MAX_AGE_SECS", str(7 * 24 * 3600))
    )
    view_cache_ttl_secs = float(os.getenv("EXPENSES_VIEW_CACHE_TTL_SECS", "30"))
    log_level = os.getenv("EXPENSES_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        session_secret=session_secret,
        csrf_secret=csrf_secret,
        session_max_age_secs=session_max_age_secs,
        view_cache_ttl_secs=view_cache_ttl_secs,
        log_level=log_level,
    )
