from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    # Gemini (Google Generative Language API)
    gemini_api_key: Optional[SecretStr] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    chat_models: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "gemini-1.5-flash-latest",
            "gemini-1.5-pro-latest",
            "gemini-pro",
            "gemini-1.0-pro",
        ]
    )
    embedding_model: str = "text-embedding-004"
    http_timeout: float = 60.0

    storage_dir: str = "./pdf-storage"
    upload_dir: str = "./uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Chunking
    chunk_size: int = 1000
    chunk_overlap: int = 200
    max_chunks: int = 50

    # Embedding generation (rate-limit friendly)
    max_embedded_chunks: int = 10
    min_embed_chars: int = 20
    embedding_delay_seconds: float = 0.1

    # Retrieval
    answer_context_chars: int = 4000
    min_content_chars: int = 50
    search_context_chars: int = 5000

    # Finished jobs kept for /jobs/{id} lookups
    job_history_limit: int = 1000

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("chat_models", mode="before")
    @classmethod
    def _split_models(cls, value):
        if isinstance(value, str):
            return [m.strip() for m in value.split(",") if m.strip()]
        return value

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir)

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_dir)


settings = Settings()
