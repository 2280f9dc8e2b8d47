from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="qtiguard API", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Model-assisted PII detection
    llm_assist_enabled: bool = Field(default=False, alias="LLM_ASSIST_ENABLED")
    anthropic_api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    llm_base_url: str = Field(default="https://api.anthropic.com", alias="LLM_BASE_URL")
    llm_model: str = Field(default="claude-3-haiku-20240307", alias="LLM_MODEL")
    llm_timeout_s: float = Field(default=30.0, alias="LLM_TIMEOUT_S")
    llm_max_tokens: int = Field(default=1024, alias="LLM_MAX_TOKENS")

    # QTI export
    qti_title_max_chars: int = Field(default=50, alias="QTI_TITLE_MAX_CHARS")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
