from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Helpdesk Reply Copilot"

    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    groq_fallback_models: list[str] = Field(default_factory=lambda: ["llama-3.1-70b-versatile"])
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000
    llm_timeout_seconds: float = 30.0

    embedding_provider: str = "default"
    google_api_key: str = ""
    google_embedding_model: str = "models/text-embedding-004"
    embedding_cache_size: int = 256

    workspace_dir: Path = Path(__file__).resolve().parents[2]
    data_dir: Path = Path("data")
    db_path: Path = Path("data/helpdesk.db")
    chroma_dir: Path = Path("data/chroma_exemplars")
    exemplar_collection: str = "style_exemplars"

    style_top_k: int = 5
    style_min_similarity: float = 0.3
    knowledge_top_k: int = 5
    fallback_draft_text: str = "I received your email and will get back to you soon."

    max_tags: int = 20
    max_tag_length: int = 50

    thread_poll_interval_seconds: float = 15.0
    typing_poll_interval_seconds: float = 2.5
    typing_expiry_seconds: float = 3.0

    log_level: str = "INFO"
    log_structured: bool = False

    account_email: str = "support@example.com"

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def resolve(self, path: Path) -> Path:
        """Resolve relative paths against the project root."""
        return path if path.is_absolute() else self.workspace_dir / path

    @property
    def db_file(self) -> Path:
        return self.resolve(self.db_path)

    @property
    def chroma_path(self) -> Path:
        return self.resolve(self.chroma_dir)

    @property
    def completion_models(self) -> list[str]:
        models = [self.groq_model, *self.groq_fallback_models]
        return list(dict.fromkeys(model for model in models if model))


@lru_cache
def get_settings() -> Settings:
    return Settings()


def ensure_directories(settings: Settings | None = None) -> None:
    """Create the local directories required by SQLite and ChromaDB."""
    config = settings or get_settings()

    for path in (
        config.resolve(config.data_dir),
        config.db_file.parent,
        config.chroma_path,
    ):
        path.mkdir(parents=True, exist_ok=True)
