from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Compilation cache
    SCHEMA_CACHE_MAX_SIZE: int | None = 512   # None disables the size bound
    SCHEMA_CACHE_TTL_SECONDS: float | None = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)

    model_config = SettingsConfigDict(
        env_prefix="DUALSCHEMA_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
