"""Configuration management."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Chat endpoint used by the client (the relay below, or any compatible proxy)
    chat_url: str = "http://localhost:8000/chat"
    chat_api_key: str = ""
    chat_timeout: float | None = None  # No timeout: a stream lives until the transport ends

    # Local persistent state
    state_dir: Path = Path.home() / ".bpmn-builder"
    storage_key: str = "bpmn-workflow-state"

    # Upstream AI gateway (relay only)
    gateway_url: str = "https://ai.gateway.lovable.dev/v1"
    gateway_api_key: str = ""
    gateway_model: str = "google/gemini-2.5-flash"
    mock_backend: bool = False  # Serve canned replies instead of calling the gateway

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings = Settings()
