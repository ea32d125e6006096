from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json

    # API Settings
    PROJECT_NAME: str = "Backspace Billing API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Session billing and invoice settlement for coworking spaces"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "backspace"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Billing policy
    CURRENCY: str = "EGP"
    INVOICE_DUE_DAYS: int = 7
    SUBSCRIPTION_INVOICE_DUE_DAYS: int = 0
    # Absorbs rounding of major-unit amounts typed into the UI
    PAYMENT_TOLERANCE_MINOR: int = 1

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
