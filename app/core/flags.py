"""
Central feature flags. One file controls every external dependency.

Set via environment variables (prefix FF_) or .env file.
When a flag is OFF, the system uses a local/mock fallback. Nothing crashes.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────────
    use_file_storage: bool = Field(default=True, alias="FF_USE_FILE_STORAGE")
    # ON  → Registry persisted to DATA_DIR/users.json + agents.json.
    # OFF → Registry kept in process memory. Lost on restart.

    # ── Registry client ──────────────────────────────────────────────
    use_remote_registry: bool = Field(default=True, alias="FF_USE_REMOTE_REGISTRY")
    # ON  → Client calls REGISTRY_API_BASE first, local store on failure.
    # OFF → Client only uses the local store. No network.

    simulate_latency: bool = Field(default=True, alias="FF_SIMULATE_LATENCY")
    # ON  → Local store sleeps 0.8–1.5s per call to feel like a network hop.
    # OFF → Local store answers immediately.

    # ── LLM ──────────────────────────────────────────────────────────
    use_llm: bool = Field(default=True, alias="FF_USE_LLM")
    # ON  → Company autofill + goal generation via LLM.
    # OFF → Both helpers raise LLMUnavailableError. User types it in.

    llm_provider: str = Field(default="gemini", alias="FF_LLM_PROVIDER")
    # "gemini" → Google Gemini (default). Needs GEMINI_API_KEY.
    # "openai" → Direct OpenAI. Needs OPENAI_API_KEY.


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()
