from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "ProxyForge"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/proxyforge"

    anthropic_api_key: str = ""
    llm_model: str = "claude-sonnet-4-20250514"
    llm_temperature: float = 0.8
    llm_max_tokens: int = 16000
    llm_timeout_seconds: float = 120.0

    scryfall_api_url: str = "https://api.scryfall.com"
    scryfall_timeout_seconds: float = 30.0

    # Retries apply to 429 and 5xx responses only
    upstream_max_retries: int = 2

    generation_chunk_size: int = 30
    generation_concurrency: int = 2
    fuzzy_lookup_concurrency: int = 8

    card_cache_ttl_days: int = 7

    rate_limit_requests: int = 30
    rate_limit_window_seconds: float = 60.0


settings = Settings()


# =============================================================================
# REQUEST LIMITS
# =============================================================================

MAX_DECK_LINES = 150
MAX_LINE_QUANTITY = 99
MIN_THEME_LENGTH = 2
MAX_THEME_LENGTH = 100
MAX_DECK_IDEA_LENGTH = 2000
# Deck and card names are stored in 255-character columns
MAX_NAME_LENGTH = 255
