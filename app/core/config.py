from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global configuration for environment variables."""

    APP_NAME: str = "Tunable AI Bot Server"
    ENV: str = "development"

    # Server config
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    CLIENT_URL: str = "http://localhost:5173"

    # API Keys
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str | None = None
    DEEPSEEK_API_KEY: str | None = None
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com/v1"

    # Model routing: one external name, one real model per provider
    VIRTUAL_MODEL: str = "gpt-5"
    PRIMARY_MODEL: str = "gpt-4o"
    SECONDARY_MODEL: str = "deepseek-chat"

    REQUEST_TIMEOUT_MS: int = 60000
    PROBE_TIMEOUT_MS: int = 5000

    # Rate limiting (fixed window per client address)
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    TRUST_FORWARDED_FOR: bool = False

    # Request bodies (JSON and form); multipart uploads get MAX_UPLOAD_BYTES plus framing
    MAX_BODY_BYTES: int = 10 * 1024 * 1024

    # Fine-tuning passthrough
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    FINE_TUNE_BASE_MODEL: str = "gpt-3.5-turbo"
    FINE_TUNE_SUFFIX: str = "tunable-bot"

    # Debug
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
