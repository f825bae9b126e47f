from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from SPLIT_LEDGER_* environment variables or .env"""

    model_config = SettingsConfigDict(env_prefix="SPLIT_LEDGER_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./split_ledger.db"
    secret_key: str = "your_secret_key"
    jwt_algorithm: str = "HS256"
    log_level: str = "INFO"

    default_currency: str = "USD"
    # Allowed deviation of a percentage split from 100
    percentage_tolerance: Decimal = Decimal("0.01")
    # None keeps the per-policy default (equal spreads, percentage/shares give residue to the last)
    default_remainder_rule: Optional[str] = None

    # Guards against pathological snapshots
    max_participants: int = 500
    max_records: int = 100_000
    max_iterations: int = 10_000


settings = Settings()
