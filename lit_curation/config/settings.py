from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
        env_prefix="LITCURATION_"
    )


    # ------------------------------------------------------------------
    # Core paths
    # ------------------------------------------------------------------
    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Base data directory for downloaded and renamed PDFs.",
    )

    # ------------------------------------------------------------------
    # External services
    # ------------------------------------------------------------------
    PUBMED_BASE_URL: str = Field(
        default="https://eutils.ncbi.nlm.nih.gov/entrez/eutils/",
        description="Base URL of the NCBI E-utilities endpoints.",
    )

    OPENALEX_BASE_URL: str = Field(
        default="https://api.openalex.org",
        description="Base URL of the OpenAlex API, used to resolve open-access PDFs.",
    )

    CROSSREF_BASE_URL: str = Field(
        default="https://api.crossref.org/works",
        description="Crossref works endpoint used for DOI metadata lookups.",
    )

    CONTACT_EMAIL: Optional[str] = Field(
        default=None,
        description=(
            "Contact address sent in the User-Agent for polite-pool access "
            "to Crossref/OpenAlex."
        ),
    )

    OPENROUTER_URL: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="OpenRouter chat completions endpoint.",
    )

    OPENROUTER_MODEL: str = Field(
        default="google/gemini-2.5-flash",
        description="Model name used for keyword generation and claim checks.",
    )

    OPENROUTER_API_KEY: Optional[SecretStr] = Field(
        default=None,
        description="OpenRouter API key. If None, assistant calls fail.",
    )

    HTTP_TIMEOUT: int = Field(
        default=30,
        description="Timeout in seconds for metadata / search / assistant requests.",
    )

    DOWNLOAD_TIMEOUT: int = Field(
        default=120,
        description="Timeout in seconds for PDF downloads.",
    )

    # ------------------------------------------------------------------
    # Pipeline knobs
    # ------------------------------------------------------------------
    SEARCH_MAX_RESULTS: int = Field(
        default=15,
        description="Result ceiling for a single literature search round.",
    )

    INTRODUCTION_MAX_CHARS: int = Field(
        default=2000,
        description=(
            "Number of characters kept after the 'Introduction' heading "
            "as verification context."
        ),
    )

    # ------------------------------------------------------------------
    # HTTP API / logging
    # ------------------------------------------------------------------
    BATCH_RATE_LIMIT: int = Field(
        default=30,
        description="How many times one batch may be triggered per window over HTTP.",
    )

    BATCH_RATE_WINDOW_SECONDS: float = Field(
        default=60.0,
        description="Length of the batch rate-limit window in seconds.",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level used by the CLI.",
    )

    # ------------------------------------------------------------------
    # Convenience derived paths
    # ------------------------------------------------------------------
    @property
    def download_dir(self) -> Path:
        return self.DATA_DIR / "downloads"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Singleton-style accessor so we only construct Settings once and
    ensure directories exist on first access.
    """
    global _settings
    if _settings is None:
        _settings = Settings()

        _settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
        _settings.download_dir.mkdir(parents=True, exist_ok=True)

    return _settings


settings = get_settings()
