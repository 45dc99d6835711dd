"""Configuration management for the chat app."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logging_utils import configure_logging
from .models import LLMSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="MINDSPACE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    backend: Literal["local", "http"] = Field(
        default="local", description="Chat backend: in-process or remote HTTP"
    )
    api_base_url: str = Field(
        default="http://localhost:8000/api", description="Remote chat API base URL"
    )
    api_token: Optional[str] = Field(None, description="Bearer token for the chat API")
    request_timeout_seconds: float = Field(default=30.0, description="HTTP timeout")
    reply_timeout_seconds: Optional[float] = Field(
        None, description="Treat a reply slower than this as a transport failure"
    )

    # Model (local backend)
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    model: str = Field(default="gpt-4o-mini", description="Chat model name")
    temperature: float = Field(default=0.7)
    top_p: float = Field(default=0.9)
    max_tokens: int = Field(default=512)

    # Conversation
    activity_selection: Literal["random", "rotate"] = Field(
        default="random", description="How a mindfulness activity is chosen"
    )
    activity_seed: Optional[int] = Field(None, description="Seed for random selection")
    resubmit_after_activity: bool = Field(
        default=False, description="Send the interrupted message after the activity"
    )
    completion_threshold: int = Field(
        default=5, description="User messages needed before a session can be completed"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    def llm_settings(self) -> LLMSettings:
        return LLMSettings(
            model=self.model,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )


def get_settings(**overrides) -> Settings:
    """Get application settings and configure logging for them."""
    settings = Settings(**overrides)
    configure_logging(settings.log_level)
    return settings
