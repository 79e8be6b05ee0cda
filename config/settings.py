# config/settings.py

from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeRateConfig(BaseModel):
    """Config for the external exchange-rate API (Frankfurter)."""

    base_url: str = "https://api.frankfurter.app"
    timeout_seconds: float = 5.0
    max_retries: int = 3
    backoff_factor: float = 0.5  # 0.5, 1, 2...


class SessionConfig(BaseModel):
    """In-memory session lifetime."""

    ttl_seconds: float = 2 * 60 * 60
    sweep_interval_seconds: float = 5 * 60


class AgentConfig(BaseModel):
    """Config for the travel agent runner."""

    temperature: float = 0.2
    max_tool_rounds: int = 5
    max_retries: int = 3
    request_timeout_seconds: float = 60.0


class LoggingConfig(BaseModel):
    """Basic logging config."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logging: bool = True


class ModulesConfig(BaseModel):
    exchange_rate_client_name: str = "ExchangeRateFrankfurterClient"


class Settings(BaseSettings):
    """Top-level app settings loaded from environment / .env."""

    env: Literal["dev", "staging", "prod"] = "dev"
    service_name: str = "travel-agent-chat"
    host: str = "0.0.0.0"
    port: int = 8000

    modules: ModulesConfig = ModulesConfig()
    exchange_rate: ExchangeRateConfig = ExchangeRateConfig()
    sessions: SessionConfig = SessionConfig()
    agent: AgentConfig = AgentConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",              # all vars start with APP_
        env_nested_delimiter="__",      # APP_EXCHANGE_RATE__BASE_URL, etc.
        case_sensitive=False,
        extra="ignore",
    )


class AzureOpenAISettings(BaseSettings):
    """Azure OpenAI deployment settings.

    Read fresh on every resolution attempt so a misconfigured process can be
    fixed without a restart. All fields are optional here; the completion
    provider decides which ones are required.
    """

    endpoint: Optional[str] = None
    deployment_name: Optional[str] = None
    api_version: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AZURE_OPENAI_",     # AZURE_OPENAI_ENDPOINT, etc.
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
