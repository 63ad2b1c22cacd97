"""
LinguaLens - Configuration
==========================
Environment-based settings using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional
import sys

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # OpenAI Configuration
    # ==========================================================================
    openai_api_key: str = Field(..., description="OpenAI API key (required)")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for the OpenAI-compatible API"
    )
    openai_model: str = Field(
        default="gpt-3.5-turbo",
        description="Chat model for translation, analysis, chat and detection"
    )
    openai_embedding_model: str = Field(default="text-embedding-ada-002")

    # ==========================================================================
    # Supabase Configuration (Auth)
    # ==========================================================================
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)

    # ==========================================================================
    # ElevenLabs Configuration (Speech)
    # ==========================================================================
    elevenlabs_api_key: Optional[str] = Field(default=None)
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1")
    elevenlabs_voice_id: str = Field(default="21m00Tcm4TlvDq8ikWAM")
    elevenlabs_model_id: str = Field(default="eleven_multilingual_v2")

    # ==========================================================================
    # Storage Configuration
    # ==========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/lingualens.db",
        description="SQLAlchemy async URL (Supabase Postgres via postgresql+asyncpg)"
    )
    upload_dir: str = Field(default="data/uploads")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    pdf_font_path: Optional[str] = Field(
        default=None,
        description="TTF font for PDF export; without it non-latin text is replaced"
    )

    # ==========================================================================
    # OCR Configuration
    # ==========================================================================
    ocr_languages: str = Field(default="eng", description="Tesseract language codes, '+' separated")
    tesseract_cmd: Optional[str] = Field(default=None)
    ocr_timeout_seconds: float = Field(default=60.0, gt=0)
    export_timeout_seconds: float = Field(default=30.0, gt=0)

    # ==========================================================================
    # Translation Configuration
    # ==========================================================================
    translation_cache_ttl_seconds: int = Field(default=30 * 60)
    default_source_language: str = Field(default="en")
    default_target_language: str = Field(default="es")

    # ==========================================================================
    # API Behaviour
    # ==========================================================================
    documents_per_page: int = Field(default=5)
    max_login_attempts: int = Field(default=4, ge=1)
    login_lockout_seconds: int = Field(default=300, ge=1)
    rate_limit_per_minute: int = Field(default=120, ge=1)
    cors_origins: list[str] = Field(default=["http://localhost:5173", "http://localhost:3000"])

    # ==========================================================================
    # Runtime Configuration
    # ==========================================================================
    environment: str = Field(default="production")
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    @property
    def auth_enabled(self) -> bool:
        """Supabase Auth is usable only when both URL and key are present."""
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def speech_enabled(self) -> bool:
        return bool(self.elevenlabs_api_key and self.elevenlabs_api_key.strip())

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_api_key(cls, v: str) -> str:
        """Validate the OpenAI key is present."""
        if not v or v.strip() == "":
            raise ValueError("OPENAI_API_KEY must not be empty")

        if not v.startswith("sk-"):
            print(
                "⚠️  WARNING: OPENAI_API_KEY does not look like an OpenAI key.",
                file=sys.stderr
            )
        return v

    @field_validator("documents_per_page")
    @classmethod
    def validate_documents_per_page(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("documents_per_page must be between 1 and 100")
        return v

    @field_validator("translation_cache_ttl_seconds")
    @classmethod
    def validate_cache_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("translation_cache_ttl_seconds must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment on every call.
    """
    return Settings()
