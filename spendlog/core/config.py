from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from spendlog.models.constants import ALL_CURRENCIES

ALLOWED_RATE_PROVIDERS = {"static", "external-http"}


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    USER_ID, APP_ORIGIN, DATA_DIR, EXCHANGE_RATE_PROVIDER).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "SpendLog"
    debug: bool = True
    version: str = "0.1.0"

    # Ledger owner for this process (one session per logged-in user)
    user_id: str = "demo"

    # Environment probe: host/origin decides local-mock vs cloud mode at startup
    app_origin: str = "http://localhost"
    development_hostnames: List[str] = ["localhost", "127.0.0.1"]
    development_patterns: List[str] = [".scf.usercontent.goog"]

    # Local (mock) persistence
    data_dir: Path = Path("data")
    seed_demo_data: bool = True

    # Cloud persistence
    firestore_project_id: Optional[str] = None
    firestore_collection: str = "users"
    firestore_emulator_host: Optional[str] = None

    # Exchange rates
    rate_base_currency: str = "EUR"
    exchange_rate_provider: str = "static"
    exchange_api_base_url: AnyHttpUrl = "https://api.exchangerate-api.com/v4/latest"  # base currency appended
    http_timeout_seconds: float = 5.0
    http_retries: int = 2

    # Virtual list defaults
    list_item_height: int = 84
    list_overscan: int = 5

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.rate_base_currency = self.rate_base_currency.upper()
        if self.rate_base_currency not in ALL_CURRENCIES:
            raise ValueError(f"Unsupported rate_base_currency '{self.rate_base_currency}'")
        if self.exchange_rate_provider not in ALLOWED_RATE_PROVIDERS:
            raise ValueError(
                f"Unsupported exchange_rate_provider '{self.exchange_rate_provider}'. Allowed: {ALLOWED_RATE_PROVIDERS}"
            )


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
