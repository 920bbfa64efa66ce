from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # Logging
    LOG_LEVEL: str = "INFO"

    # Origins allowed to open channels from a browser
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # OTP lifetime, in seconds
    OTP_TTL_SECONDS: int = 300

    # Write issued codes to the operator log (the only delivery path for codes)
    LOG_OTP_CODES: bool = True

    # Decoded attachment size limit
    MAX_ATTACHMENT_BYTES: int = 5 * 1024 * 1024

    # Per-send timeout for outbound events
    SEND_TIMEOUT_SECONDS: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


# Global settings instance
settings = get_settings()
