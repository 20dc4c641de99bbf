"""
Central feature flags. One file controls every external dependency.

Set via environment variables (prefix FF_) or .env file.
When a flag is OFF, the system uses a local fallback. Nothing crashes.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import Settings


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── LLM Provider ─────────────────────────────────────────────────
    llm_provider: str = Field(default="groq", alias="FF_LLM_PROVIDER")
    # "groq"   → Groq OpenAI-compatible API (default). Needs GROQ_API_KEY.
    # "openai" → Direct OpenAI. Needs OPENAI_API_KEY.

    # ── Embeddings ───────────────────────────────────────────────────
    use_remote_embeddings: bool = Field(default=False, alias="FF_USE_REMOTE_EMBEDDINGS")
    # ON  → /embeddings endpoint of the active LLM provider.
    # OFF → Local hashed bag-of-words vectors. No key needed.


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()


def provider_endpoint(settings: Settings, provider: Optional[str] = None) -> tuple[str, str]:
    """Returns (base_url, api_key) for an LLM provider."""
    p = (provider or get_flags().llm_provider).lower()

    if p == "openai":
        return settings.openai_base_url, settings.openai_api_key
    return settings.groq_base_url, settings.groq_api_key
