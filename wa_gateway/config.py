"""Configuration management for the WhatsApp gateway."""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration."""

    # Storage
    # SQLite for development, PostgreSQL in production.
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./wa_gateway.db")
    # "database" keeps conversation state in the SQL store, "memory" keeps it in-process.
    STATE_BACKEND: str = os.getenv("STATE_BACKEND", "database").lower()

    # Task queue (Celery broker + result backend)
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # Run tasks inline instead of sending them to the broker (local dev / tests).
    CELERY_TASK_ALWAYS_EAGER: bool = os.getenv("CELERY_TASK_ALWAYS_EAGER", "False").lower() == "true"
    HOLD_PURGE_INTERVAL_SECONDS: int = int(os.getenv("HOLD_PURGE_INTERVAL_SECONDS", "300"))

    # Evolution API (WhatsApp bridge)
    EVOLUTION_API_BASE_URL: str = os.getenv("EVOLUTION_API_BASE_URL", "")
    EVOLUTION_API_TOKEN: str = os.getenv("EVOLUTION_API_TOKEN", "")
    # When enabled, outbound messages are logged instead of sent.
    EVOLUTION_DRY_RUN: bool = os.getenv("EVOLUTION_DRY_RUN", "False").lower() == "true"
    EVOLUTION_TIMEOUT_SECONDS: float = float(os.getenv("EVOLUTION_TIMEOUT_SECONDS", "15"))
    INSTANCE_NAME: str = os.getenv("INSTANCE_NAME", "wa-mvp")
    PUBLIC_WEBHOOK_URL: str = os.getenv("PUBLIC_WEBHOOK_URL", "http://localhost:8000")

    # Conversation / bots
    DEFAULT_TENANT_ID: str = os.getenv("DEFAULT_TENANT_ID", "mvp")
    DEFAULT_BOT: str = os.getenv("DEFAULT_BOT", "menu-basic")

    # Booking
    SLOT_HOLD_MS: int = int(os.getenv("SLOT_HOLD_MS", "180000"))
    RESOURCE_ID: str = os.getenv("RESOURCE_ID", "default")
    BUSINESS_TIMEZONE: str = os.getenv("BUSINESS_TIMEZONE", "UTC")

    # OpenAI Configuration
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    # Application Settings
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Security
    API_KEY: str = os.getenv("API_KEY", "")  # For operator endpoints

    @classmethod
    def has_openai_key(cls) -> bool:
        """Check if OpenAI API key is configured."""
        return bool(cls.OPENAI_API_KEY)

    @classmethod
    def has_evolution_config(cls) -> bool:
        """Check if the Evolution API bridge is configured."""
        return bool(cls.EVOLUTION_API_BASE_URL)


# Create a global config instance
config = Config()
