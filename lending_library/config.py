import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Storage settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")
    snapshot_key: str = os.getenv("LIBRARY_SNAPSHOT_KEY", "catalog")

    # Lending rules
    loan_days: int = int(os.getenv("LIBRARY_LOAN_DAYS", "14"))
    fine_per_day: float = float(os.getenv("LIBRARY_FINE_PER_DAY", "1.0"))
    currency: str = os.getenv("LIBRARY_CURRENCY", "$")

    # Background fine/notification pass
    scheduler_interval_hours: float = float(os.getenv("LIBRARY_SCHEDULER_INTERVAL_HOURS", "24"))

    # Starter titles for an empty catalog
    seed_demo_books: bool = _env_flag("LIBRARY_SEED_DEMO_BOOKS")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Lending Library")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING").upper()
    debug: bool = _env_flag("DEBUG")

    @property
    def scheduler_interval_seconds(self) -> float:
        return self.scheduler_interval_hours * 3600


settings = Settings()
