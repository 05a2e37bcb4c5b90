"""Application configuration settings"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Configuration values loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore")

    database_path: str = Field(default="marketplace.db", description="SQLite database file used by aiosqlite", min_length=1)
    secret_key: str = Field(description="Secret key used to sign and verify JWT access tokens", min_length=1)
    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT signatures")
    access_token_expire_minutes: int = Field(default=60 * 24 * 7, description="Minutes before access tokens expire", gt=0)
    notify_new_message: bool = Field(default=True, description="Create a NEW_MESSAGE notification for every delivered message")
    host: str = Field(default="localhost")
    port: int = Field(default=8765, gt=0)
    log_level: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance"""
    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment"""
    get_settings.cache_clear()
