"""Environment-based configuration for the companion API."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Companion API settings, loaded once from environment variables."""

    # Server
    PORT: int = 8092

    # Gemini credential (empty = calls are still attempted and fail remotely)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Gemini timeouts and retry
    GEMINI_TIMEOUT_SECONDS: int = 0  # 0 = no read timeout
    GEMINI_CONNECT_TIMEOUT: int = 30
    GEMINI_RETRY_ATTEMPTS: int = 1  # 1 = single best-effort call
    GEMINI_RETRY_DELAY: float = 2.0
    GEMINI_RETRY_BACKOFF: float = 2.0

    # Medication reminders fire this many minutes before the dose time
    REMINDER_LEAD_MINUTES: int = 0

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
