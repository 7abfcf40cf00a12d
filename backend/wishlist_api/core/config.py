from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    Production provides env vars; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API keys
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = ""
    SERPAPI_API_KEY: str = ""

    # Which OfferSource backs the store search: "gemini" or "serpapi"
    OFFER_SOURCE: str = "gemini"

    # Database (any SQLAlchemy async URL)
    DATABASE_URL: str = "sqlite+aiosqlite:///./wishlist.db"

    # Admin endpoints are open when this is empty (local dev)
    ADMIN_API_KEY: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Result caps for the two store search endpoints
    FILTERED_STORES_LIMIT: int = 5
    ALTERNATIVES_LIMIT: int = 10

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"


# ✅ MUST EXIST: other modules import this
settings = Settings()
