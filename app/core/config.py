from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Application settings
    SECRET_KEY: str = "your-secret-key-here"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 9000
    ENVIRONMENT: str = "development"
    FRONTEND_URL: str = "http://localhost:3000"

    # JWT settings
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Database settings
    DATABASE_URL_OVERRIDE: Optional[str] = None
    POSTGRES_USER: str = "lms"
    POSTGRES_PASSWORD: str = "Passw0rd"
    POSTGRES_DB: str = "lms"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    SQL_ECHO: bool = False  # Set to True for SQL query debugging

    # Scheduler settings
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_TIMEZONE: str = "Europe/Moscow"
    DEADLINE_SWEEP_HOUR: int = 9

    # Notifications
    MESSAGE_PREVIEW_LENGTH: int = 100

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
