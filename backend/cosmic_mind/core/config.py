from pydantic_settings import BaseSettings
from typing import List, Any
from pydantic import field_validator
import json


class Settings(BaseSettings):
    # Branding
    app_name: str = "Cosmic Mind"
    version: str = "1.0.0"

    # Database
    database_url: str = "sqlite:///./cosmic_mind.db"

    # Security
    jwt_secret: str = "cosmic-mind-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 1 week
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Reminders
    # Single reference timezone for recurrence and message timestamps, not per user
    reminder_timezone: str = "Asia/Kolkata"
    reminder_retry_attempts: int = 2
    reminder_retry_delay_seconds: float = 5.0

    # Telegram bot
    telegram_bot_token: str = ""
    telegram_api_base_url: str = "https://api.telegram.org"
    telegram_default_chat_id: str = ""
    telegram_timeout_s: float = 10.0

    # LLM (Groq, OpenAI-compatible)
    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_models: List[str] = [
        "llama-3.1-70b-versatile",
        "llama-3.1-8b-instant",
        "mixtral-8x7b-32768",
        "gemma2-9b-it",
    ]
    groq_timeout_s: float = 60.0

    class Config:
        env_file = ".env"

    @field_validator("cors_origins", "groq_models", mode="before")
    @classmethod
    def _parse_list(cls, v: Any) -> Any:
        """Allow list settings to be provided as JSON array or comma-separated string."""
        if isinstance(v, str):
            sv = v.strip()
            if not sv:
                return []
            if sv.startswith("["):
                try:
                    parsed = json.loads(sv)
                    if isinstance(parsed, list):
                        return parsed
                except ValueError:
                    pass
            # Fallback: comma-separated
            return [s.strip() for s in sv.split(",") if s.strip()]
        return v

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token)

    @property
    def groq_enabled(self) -> bool:
        return bool(self.groq_api_key)


settings = Settings()
