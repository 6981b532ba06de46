from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TRIBEBOARD_", env_file=".env", extra="ignore")
    DATABASE_URL: str = "sqlite:///./tribeboard.db"
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_MIN: int = 60 * 24
    REFRESH_TOKEN_DAYS: int = 30

    # sync backend; empty means local-only
    REMOTE_STORE_URL: str = ""
    REMOTE_STORE_API_KEY: str = ""
    REMOTE_TIMEOUT_SECONDS: float = 5.0

    CODE_LENGTH: int = 6
    CODE_MAX_ATTEMPTS: int = 10
    REMOTE_FAILURE_THRESHOLD: int = 3
    BACKOFF_BASE_SECONDS: float = 0.1
    BACKOFF_MULTIPLIER: float = 2.0
    BACKOFF_MAX_SECONDS: float = 5.0

    JOIN_URL_BASE: str = ""
settings = Settings()
