from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Shortlink"
    app_version: str = "1.0.0"

    # Server
    base_url: str = "http://127.0.0.1:8000"

    # Database (source of truth)
    database_url: str = "sqlite:///./shortlink.db"
    database_timeout_seconds: float = 10.0

    # Short codes
    # Added to the id before base62 encoding so every code is at least 3 chars (62^2)
    short_code_offset: int = 3844
    max_url_length: int = 2048

    # Ownership policy: when True, anonymous URLs can only be managed by anonymous callers
    strict_anonymous_ownership: bool = True

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_timeout_seconds: float = 0.25  # Much shorter than the database timeout
    cache_key_prefix: str = ""

    # Cache TTLs in seconds
    url_cache_ttl: int = 3600  # id:<id>
    short_code_mapping_ttl: int = 7200  # shortcode_mapping:<code>
    user_urls_cache_ttl: int = 3600  # user:<owner_id>
    clicks_cache_ttl: int = 86400  # clicks:<code>

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
