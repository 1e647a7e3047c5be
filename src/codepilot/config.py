"""Configuration settings for the application."""

from pydantic import (
    BaseModel,
    ConfigDict,
)
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
)


class AgentConfig(BaseModel):
    """Static configuration handed to the agent at construction.  Never re-read mid-session."""

    model_config = ConfigDict(frozen=True)

    model: str = "gpt-4"
    max_tokens: int = 1024
    memory_capacity: int = 40
    max_concurrency: int = 5
    system_message: str | None = None
    reasoning_enabled: bool = False
    reasoning_max_steps: int = 10


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # These will be loaded from environment variables or a .env file if not provided
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical
    VERBOSE: bool = False

    # LLM Configuration
    OPENAI_API_KEY: str | None = None
    OPENAI_API_BASE_URL: str | None = None
    MODEL: str = "gpt-4"
    MAX_TOKENS: int = 1024
    REQUEST_TIMEOUT: int = 30  # seconds
    SYSTEM_MESSAGE: str | None = None

    # Agent Configuration
    MEMORY_CAPACITY: int = 40
    MAX_CONCURRENCY: int = 5
    REASONING_ENABLED: bool = False
    REASONING_MAX_STEPS: int = 10

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def agent_config(self) -> AgentConfig:
        return AgentConfig(
            model=self.MODEL,
            max_tokens=self.MAX_TOKENS,
            memory_capacity=self.MEMORY_CAPACITY,
            max_concurrency=self.MAX_CONCURRENCY,
            system_message=self.SYSTEM_MESSAGE,
            reasoning_enabled=self.REASONING_ENABLED,
            reasoning_max_steps=self.REASONING_MAX_STEPS,
        )
