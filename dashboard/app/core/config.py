from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Pharmacy backend REST API
    BACKEND_API_URL: str = "http://localhost:5089"
    BACKEND_TIMEOUT_SECONDS: float = 30.0
    BACKEND_PAGE_SIZE: int = 100

    # CORS origins for the dashboard UI
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Reports
    CURRENCY: str = "QAR"
    STATEMENT_DEFAULT_MONTHS: int = 3
    # Directory holding NotoSansArabic-{Regular,Bold}.ttf for Arabic PDF exports
    PDF_FONT_DIR: str | None = None

    LOG_LEVEL: str = "INFO"


settings = Settings()
