"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    auth_provider: Literal["mock", "firebase"] = "firebase"
    firebase_project_id: str | None = None
    firebase_audience: str | None = None

    transcription_provider: Literal["mock", "assemblyai"] = "assemblyai"
    assemblyai_api_key: str | None = None
    assemblyai_base_url: str = "https://api.assemblyai.com/v2"

    payment_provider: Literal["mock", "mercadopago"] = "mercadopago"
    mercadopago_access_token: str | None = None
    mercadopago_base_url: str = "https://api.mercadopago.com"
    mercadopago_webhook_secret: str | None = None

    frontend_url: str = "http://localhost:5173"
    webhook_url: str = "http://localhost:8080"
    provider_timeout_seconds: float = 30.0

    poll_interval_seconds: float = 3.0
    job_timeout_seconds: float = 1800.0
    worker_max_workers: int | None = None

    signup_credits: int = 300
    default_language: str = "es"
    export_formats: tuple[str, ...] = ("srt", "vtt")

    model_config = SettingsConfigDict(env_prefix="LITWICK_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
