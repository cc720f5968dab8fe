"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Broker API
    broker_base_url: str = "https://paper-api.alpaca.markets"
    broker_api_key: str = ""
    broker_api_secret: str = ""
    request_timeout_seconds: float = 30.0

    # Sync
    poll_interval_seconds: float = 15.0  # trades/account/positions refresh period
    default_range: str = "1D"

    # Journal backend (PostgREST)
    journal_url: str = ""
    journal_key: str = ""
    journal_recent_limit: int = 30
    bot_logs_limit: int = 50

    # Chat assistant
    gemini_api_key: str = ""
    gemini_model: str = "gemini-3-flash-preview"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"

    # Logging
    log_level: str = "INFO"

    @property
    def has_broker_credentials(self) -> bool:
        return bool(self.broker_api_key and self.broker_api_secret)

    @property
    def has_journal(self) -> bool:
        return bool(self.journal_url and self.journal_key)


settings = Settings()
