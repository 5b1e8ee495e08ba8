from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Cloud Drive API"
    ENVIRONMENT: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # JWT (tokens are issued by the identity provider with the same secret)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Share links
    SHARE_BASE_URL: str = "http://localhost:5000"
    SHARE_PASSWORD_BCRYPT_ROUNDS: int = 10

    # Rate limiting
    RATE_LIMIT_BACKEND: str = "memory"  # "memory" or "database"
    API_RATE_LIMIT_WINDOW_SECONDS: int = 60
    API_RATE_LIMIT_MAX_REQUESTS: int = 100
    SHARE_RATE_LIMIT_WINDOW_SECONDS: int = 300
    SHARE_RATE_LIMIT_MAX_REQUESTS: int = 20
    SHARE_PASSWORD_RATE_LIMIT_WINDOW_SECONDS: int = 900
    SHARE_PASSWORD_RATE_LIMIT_MAX_REQUESTS: int = 5
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: int = 300

    # Comma separated proxy addresses trusted to set X-Forwarded-For
    FORWARDED_ALLOW_IPS: str = "127.0.0.1"

    # Azure Blob Storage (optional, enables SAS download URLs)
    AZURE_STORAGE_ACCOUNT_NAME: Optional[str] = None
    AZURE_STORAGE_ACCOUNT_KEY: Optional[str] = None
    FILES_CONTAINER: str = "drive-files"
    DOWNLOAD_URL_EXPIRE_MINUTES: int = 15

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @field_validator("SECRET_KEY")
    @classmethod
    def secret_key_length(cls, value: str) -> str:
        if len(value) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters")
        return value

    @field_validator("RATE_LIMIT_BACKEND")
    @classmethod
    def known_rate_limit_backend(cls, value: str) -> str:
        if value not in ("memory", "database"):
            raise ValueError("RATE_LIMIT_BACKEND must be 'memory' or 'database'")
        return value

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def forwarded_allow_ips_list(self) -> List[str]:
        return [ip.strip() for ip in self.FORWARDED_ALLOW_IPS.split(",") if ip.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def share_url(self, token: str) -> str:
        return f"{self.SHARE_BASE_URL.rstrip('/')}/share/{token}"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
