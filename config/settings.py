"""
Configuration settings for the application
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Free plan limits (messages)
FREE_DAILY_MESSAGE_LIMIT = 5
FREE_MONTHLY_MESSAGE_LIMIT = 50

FREE_PRODUCT_NAME = "Free"

DEFAULT_PROJECT_NAME = "New Project"
MAX_PROJECT_NAME_LENGTH = 50


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Core authentication and security
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")

    # Stripe billing configuration
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")

    # Language model used for project names (OpenAI-compatible endpoint)
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default="https://openrouter.ai/api/v1", alias="OPENAI_BASE_URL")
    project_name_model: str = Field(default="openai/gpt-4.1-nano", alias="PROJECT_NAME_MODEL")

    # Product analytics (PostHog-compatible capture endpoint)
    analytics_host: Optional[str] = Field(default=None, alias="ANALYTICS_HOST")
    analytics_api_key: Optional[str] = Field(default=None, alias="ANALYTICS_API_KEY")

    # Infrastructure configuration
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./sql_app.db", alias="DATABASE_URL")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:3000", alias="FRONTEND_URL")

    # Render.com deployment configuration
    render: Optional[str] = Field(default=None, alias="RENDER")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.render) or bool(settings.env and settings.env.lower() == "production")
