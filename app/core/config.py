from decimal import Decimal
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Настройки базы данных
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = ""
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "vale_cashback"
    # Полная строка подключения (перекрывает параметры выше, например для sqlite в тестах)
    DATABASE_DSN: Optional[str] = None

    # Настройки JWT токенов
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 7 дней

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    RATE_LIMIT_ENABLED: bool = True

    # Уровень логирования приложения ("DEBUG", "INFO", ...)
    LOG_LEVEL: str = "INFO"
    # Уровень SQL-логов SQLAlchemy (WARNING - без запросов)
    SQL_LOG_LEVEL: str = "WARNING"

    # Системные ставки по умолчанию (в процентах)
    DEFAULT_PLATFORM_FEE: Decimal = Decimal("2.0")
    DEFAULT_MERCHANT_COMMISSION: Decimal = Decimal("2.0")
    DEFAULT_CLIENT_CASHBACK: Decimal = Decimal("2.0")
    DEFAULT_REFERRAL_BONUS: Decimal = Decimal("1.0")
    DEFAULT_MIN_WITHDRAWAL: Decimal = Decimal("50.0")
    DEFAULT_MAX_CASHBACK_BONUS: Decimal = Decimal("10.0")

    MIN_TRANSFER_AMOUNT: Decimal = Decimal("1.00")
    QR_CODE_TTL_MINUTES: int = 60
    MERCHANT_AUTO_APPROVE: bool = True

    # Хранение уведомлений (дни)
    NOTIFICATION_READ_RETENTION_DAYS: int = 30
    NOTIFICATION_RETENTION_DAYS: int = 90

    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS_STR: str = Field(default="", alias="CORS_ORIGINS")

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_DSN:
            return self.DATABASE_DSN
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True)

settings = Settings()
