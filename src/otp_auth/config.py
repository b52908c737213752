"""OTP Auth — configuration loaded from environment."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Library-wide settings, loaded from .env or ``OTP_AUTH_*`` variables."""

    # ── OTP lifecycle ─────────────────────────────────────
    otp_length: int = Field(default=6, ge=1)
    otp_ttl_seconds: int = Field(default=60, ge=1)
    otp_max_attempts: int = Field(default=3, ge=1)

    # ── Analytics ─────────────────────────────────────────
    include_code_in_analytics: bool = False

    # ── App ───────────────────────────────────────────────
    app_name: str = "OTP Auth"
    debug: bool = True

    model_config = {
        "env_prefix": "OTP_AUTH_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @property
    def otp_ttl_ms(self) -> int:
        return self.otp_ttl_seconds * 1000


# Singleton settings instance
settings = Settings()
