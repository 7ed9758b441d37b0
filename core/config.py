import os
from functools import lru_cache

from dotenv import load_dotenv

# Path: project_root/data/patient_records.db
BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "data", "patient_records.db")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Runtime settings read from the environment (and a local .env file).

    DATABASE_URL  any SQLAlchemy URL, defaults to the bundled SQLite file
    SQL_ECHO      echo SQL statements
    DB_TIMEOUT    SQLite busy timeout in seconds
    LOG_LEVEL     root log level
    LOG_JSON      emit JSON log lines instead of the human format
    """

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")
        self.sql_echo = _env_flag("SQL_ECHO")
        self.db_timeout = float(os.getenv("DB_TIMEOUT", "30"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_json = _env_flag("LOG_JSON")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return Settings()
