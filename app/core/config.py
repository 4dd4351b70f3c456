"""
Central configuration. All paths, keys and settings in one place.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Environment ---
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    # --- Registry storage (file-backed variant) ---
    data_dir: str = Field(default=".", alias="DATA_DIR")
    users_file: str = Field(default="users.json", alias="USERS_FILE")
    agents_file: str = Field(default="agents.json", alias="AGENTS_FILE")

    # --- Verification ---
    # Demo value shared by the server and the client fallback. Not a secret.
    demo_otp: str = Field(default="123456", alias="DEMO_OTP")

    # --- Registry client ---
    registry_api_base: str = Field(default="http://localhost:3000/api", alias="REGISTRY_API_BASE")
    registry_api_timeout: float = Field(default=10.0, alias="REGISTRY_API_TIMEOUT")

    # --- LLM ---
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    default_llm_model: str = Field(default="gemini-2.5-flash", alias="DEFAULT_LLM_MODEL")
    default_llm_temperature: float = Field(default=0.7, alias="DEFAULT_LLM_TEMPERATURE")
    default_llm_max_tokens: int = Field(default=2048, alias="DEFAULT_LLM_MAX_TOKENS")

    # --- API ---
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=3000, alias="API_PORT")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")


@lru_cache
def get_settings() -> Settings:
    return Settings()
