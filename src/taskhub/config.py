from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    ``JWT_SECRET`` has no default: the process refuses to start without one.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field("sqlite:///taskhub.db")
    jwt_secret: str = Field(..., min_length=1)
    jwt_algorithm: str = Field("HS256")
    token_expire_minutes: int = Field(60 * 24, gt=0)
    cors_origin: str = Field("*")
    api_title: str = Field("Task Hub API")
    log_level: str = Field("INFO")
    # Registration currently trusts a caller-supplied role; see DESIGN.md.
    allow_admin_self_registration: bool = Field(True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
