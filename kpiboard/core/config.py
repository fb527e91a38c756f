from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./data/kpiboard.db"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Shared secret for uploads and other admin operations.
    ADMIN_PASSWORD: str = "changeme-admin"

    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_MB: int = 50
    MAX_UPLOAD_FILES: int = 10

    # "headers" (fixed column names) or "model" (LLM-assisted interpretation)
    EXTRACTION_STRATEGY: str = "headers"

    # Empty key means the text-generation collaborator is unavailable.
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    ANTHROPIC_API_URL: str = "https://api.anthropic.com/v1/messages"
    ANTHROPIC_TIMEOUT: int = 60

    # Run Alembic migrations and default seeding on startup.
    AUTO_MIGRATE: bool = True

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def upload_path(self) -> Path:
        return Path(self.UPLOAD_DIR)


settings = Settings()
