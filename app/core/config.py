from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # DB URL (환경변수: DATABASE_URL)
    database_url: str = Field(
        default="sqlite:///./dev.db",
        validation_alias="DATABASE_URL",
    )
    # development | production | test
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    # 로깅
    log_level: Optional[str] = Field(default=None, validation_alias="LOG_LEVEL")
    log_to_file: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    log_dir: str = Field(default="logs", validation_alias="LOG_DIR")

    # CORS
    cors_origins: str = Field(default="*")  # comma separated list for production

    # 요청 제한 (IP 기준, /books 전체 공유). 다중 인스턴스에서는 redis:// 저장소 사용
    rate_limit_enabled: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    rate_limit: str = Field(default="100 per 15 minutes", validation_alias="RATE_LIMIT")
    rate_limit_storage_uri: str = Field(default="memory://", validation_alias="RATE_LIMIT_STORAGE_URI")

    # Redis (알림 큐 브로커)
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")

    # 위시리스트 알림 큐
    notification_queue: str = Field(default="wishlist-notifications")
    notification_max_attempts: int = Field(default=3, ge=1)
    notification_backoff_seconds: int = Field(default=2, ge=1)
    notification_priority: int = Field(default=0, ge=0, le=9)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="forbid",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "INFO" if self.is_production else "DEBUG"

    @property
    def redis_url(self) -> str:
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
