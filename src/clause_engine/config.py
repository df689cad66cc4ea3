"""Configuration models for the decision pipeline."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChunkingConfig(BaseModel):
    """Configures fixed-size character windows."""

    size: int = Field(default=1000, ge=1)
    overlap: int = Field(default=100, ge=0)


class BoostRule(BaseModel):
    """Adds `bonus` to chunks containing a signal when the query has a trigger."""

    name: str
    triggers: list[str] = Field(min_length=1)
    signals: list[str] = Field(min_length=1)
    bonus: float = Field(default=10.0, gt=0.0)


EXCLUSION_BOOST = BoostRule(
    name="exclusion",
    triggers=[
        "payable",
        "charges",
        "covered for",
        "excluded",
        "exclusion",
        "not covered",
    ],
    signals=["not payable", "not covered", "exclusion", "excluded", "annexure"],
    bonus=10.0,
)


class RetrievalConfig(BaseModel):
    """Configures lexical retrieval and domain boosts."""

    top_k: int = Field(default=7, ge=1)
    min_token_length: int = Field(default=3, ge=1)
    boost_rules: list[BoostRule] = Field(
        default_factory=lambda: [EXCLUSION_BOOST.model_copy(deep=True)]
    )


class ClientConfig(BaseModel):
    """Configures retry, backoff and timeout for the model endpoint."""

    max_retries: int = Field(default=3, ge=0)
    backoff_base: float = Field(default=2.0, ge=1.0)
    timeout_seconds: float = Field(default=60.0, gt=0.0)
    retryable_statuses: frozenset[int] = frozenset({429, 503})


class ModelSettings(BaseSettings):
    """Endpoint credentials read from `GEMINI_*` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_", env_file=".env", extra="ignore"
    )

    api_key: str | None = None
    model: str = "gemini-2.0-flash"
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
