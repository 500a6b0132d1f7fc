"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_LOCAL_DATA_DIR = BASE_DIR / "data"


class Settings(BaseSettings):
    """Runtime configuration for the OralMarks scoring service."""

    model_config = SettingsConfigDict(env_prefix="ORALMARKS_", extra="ignore")

    app_name: str = "OralMarks Scoring API"
    data_dir: str = Field(
        default=str(DEFAULT_LOCAL_DATA_DIR),
        validation_alias=AliasChoices("ORALMARKS_DATA_DIR", "DATA_DIR"),
    )
    sqlite_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ORALMARKS_SQLITE_PATH", "SQLITE_PATH"),
    )

    # CORS configuration
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=AliasChoices("ORALMARKS_CORS_ALLOW_ORIGINS", "CORS_ALLOW_ORIGINS"),
    )

    # Blob storage
    storage_backend: str = "local"
    recordings_bucket: str = Field(
        default="student-recordings",
        validation_alias=AliasChoices("ORALMARKS_RECORDINGS_BUCKET", "RECORDINGS_BUCKET"),
    )
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_endpoint_url: str | None = None
    s3_region: str | None = None

    # Primary provider (OpenAI)
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ORALMARKS_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    openai_transcribe_model: str = Field(
        default="whisper-1",
        validation_alias=AliasChoices("ORALMARKS_OPENAI_TRANSCRIBE_MODEL", "OPENAI_TRANSCRIBE_MODEL"),
    )
    openai_score_model: str = Field(
        default="gpt-5-mini-2025-08-07",
        validation_alias=AliasChoices("ORALMARKS_OPENAI_SCORE_MODEL", "OPENAI_SCORE_MODEL", "OPENAI_TEXT_MODEL"),
    )

    # Fallback / reviewer provider (Gemini)
    gemini_enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("ORALMARKS_GEMINI_ENABLED", "ENABLE_GEMINI", "GEMINI_ENABLED"),
    )
    google_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "ORALMARKS_GOOGLE_API_KEY",
            "GOOGLE_API_KEY",
            "GEMINI_API_KEY",
            "GOOGLE_GENERATIVE_AI_KEY",
        ),
    )
    gemini_transcribe_model: str = Field(
        default="gemini-2.5-flash",
        validation_alias=AliasChoices("ORALMARKS_GEMINI_TRANSCRIBE_MODEL", "GEMINI_TRANSCRIBE_MODEL", "GEMINI_TEXT_MODEL"),
    )
    gemini_score_model: str = Field(
        default="gemini-2.5-flash",
        validation_alias=AliasChoices("ORALMARKS_GEMINI_SCORE_MODEL", "GEMINI_SCORE_MODEL", "GEMINI_TEXT_MODEL"),
    )
    gemini_review_model: str = Field(
        default="gemini-2.5-flash",
        validation_alias=AliasChoices("ORALMARKS_GEMINI_REVIEW_MODEL", "GEMINI_REVIEW_MODEL"),
    )
    review_enabled: bool = True

    # Provider call limits
    provider_timeout_seconds: float = 60.0
    provider_max_retries: int = 2

    pause_threshold_seconds: float = 5.0

    # Batch scoring
    cron_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ORALMARKS_CRON_SECRET", "CRON_SECRET"),
    )
    cron_batch_limit: int = 3

    @model_validator(mode="after")
    def _set_sqlite_path(self) -> "Settings":
        if not self.sqlite_path:
            self.sqlite_path = str(Path(self.data_dir) / "oralmarks.db")
        return self

    @property
    def sqlite_url(self) -> str:
        return f"sqlite:///{self.sqlite_path}"

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def cors_origin_list(self) -> list[str]:
        if self.cors_allow_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())

    @property
    def gemini_configured(self) -> bool:
        return self.gemini_enabled and bool(self.google_api_key and self.google_api_key.strip())


settings = Settings()
