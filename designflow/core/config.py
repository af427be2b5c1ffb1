from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    APP_NAME: str = Field(default="DesignFlow API")
    ENV: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")
    LOG_DIR: str | None = None

    DATABASE_URL: str = Field(default="sqlite:///./designflow.db")
    USE_CREATE_ALL: bool = Field(default=True)

    SECRET_KEY: str = Field(default="change-me-in-prod")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)

    # AI collaborator (Anthropic Messages API)
    ANTHROPIC_API_KEY: str | None = None
    AI_BASE_URL: str = Field(default="https://api.anthropic.com/v1/messages")
    AI_MODEL: str = Field(default="claude-3-5-sonnet-20240620")
    AI_VISION_MODEL: str = Field(default="claude-3-5-sonnet-20240620")
    AI_MAX_TOKENS: int = Field(default=6000)
    AI_TIMEOUT_SECONDS: float = Field(default=90.0)

    # Rate limiting
    RATE_LIMIT_STORAGE_URI: str = Field(default="memory://")
    AI_RATE_LIMIT: int = Field(default=10)
    AI_RATE_WINDOW_SECONDS: int = Field(default=3600)
    GLOBAL_RATE_LIMIT: str = Field(default="100/minute")
    GLOBAL_RATE_LIMIT_ENABLED: bool = Field(default=True)

    # Screenshot storage
    UPLOAD_DIR: str = Field(default="uploads")
    UPLOAD_BASE_URL: str = Field(default="/uploads")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
