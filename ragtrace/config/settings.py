"""Runtime configuration, read from the environment and ``.env``.

Every field maps to an upper-case environment variable of the same name,
e.g. ``MAX_ANSWER_CHARS=8000``.
"""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _sanitize_secret(value: str) -> str:
    """Drop a leading BOM and surrounding whitespace.

    Secrets pasted into hosting dashboards sometimes carry a BOM, which is
    not a valid character in an HTTP header.
    """
    if not value:
        return value
    return value.lstrip("\ufeff").strip()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Collaborators
    google_api_key: str = ""
    llm_model: str = "gemini-2.0-flash"
    embedding_model: str = "gemini-embedding-001"
    qdrant_url: str = ""
    qdrant_api_key: str = ""
    qdrant_collection: str = "document_chunks"

    # Run history
    data_dir: Path = Path("./data")
    runs_db_name: str = "runs.db"

    # Retrieval defaults; caller values outside the bounds fall back to these
    default_top_k: int = Field(5, ge=1)
    max_top_k: int = Field(20, ge=1)
    default_threshold: float = Field(0.4, ge=0.0, le=1.0)

    # Stage bounds
    tool_delay_ms: int = Field(200, ge=0)
    collaborator_timeout_seconds: float = Field(30.0, gt=0)
    generation_timeout_seconds: float = Field(120.0, gt=0)
    max_answer_chars: int = Field(20000, ge=1)
    max_question_chars: int = Field(4000, ge=1)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    debug: bool = False

    @field_validator("google_api_key", "qdrant_api_key", "qdrant_url", mode="after")
    @classmethod
    def sanitize_secrets(cls, value: str) -> str:
        return _sanitize_secret(value)

    @model_validator(mode="after")
    def check_top_k_bounds(self) -> "Settings":
        if self.default_top_k > self.max_top_k:
            raise ValueError(
                f"default_top_k ({self.default_top_k}) exceeds max_top_k ({self.max_top_k})"
            )
        return self

    @property
    def runs_db_path(self) -> Path:
        """SQLite file holding the run history."""
        return self.data_dir / self.runs_db_name

    def ensure_directories(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)


settings = Settings()
