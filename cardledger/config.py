from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="CARDLEDGER_")

    app_name: str = "CardLedger"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///./cardledger.db"

    # Scryfall default-cards dump; the identity cache is only built when this exists
    catalog_path: Path | None = None


settings = Settings()


# =============================================================================
# LEDGER LIMITS
# =============================================================================

# Rows returned by a listing when the caller asks for 0
DEFAULT_LIST_LIMIT = 10

# Hard ceiling on rows returned by a single listing
MAX_LIST_LIMIT = 100

# Maximum number of lines in one AddCards / OpenRequest / OpenTransfer call
ROW_UPLOAD_LIMIT = 100
