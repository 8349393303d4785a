# cantinaxl/core/config.py
import os
import logging
from pydantic_settings import BaseSettings
from typing import List

from cantinaxl.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "CantinaXL Payments"
    API_V1_STR: str = "/api"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    POSTGRES_USER: str = os.getenv("DB_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("DB_PASSWORD", "123")
    POSTGRES_SERVER: str = os.getenv("DB_HOST", "localhost")
    POSTGRES_PORT: str = os.getenv("DB_PORT", "5432")
    POSTGRES_DB: str = os.getenv("DB_NAME", "cantinaxl")
    DATABASE_URL: str = f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_SERVER}:{POSTGRES_PORT}/{POSTGRES_DB}"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Public URLs
    STOREFRONT_URL: str = os.getenv("STOREFRONT_URL", "https://cantinaxl.com")
    WEBHOOK_BASE_URL: str = os.getenv("WEBHOOK_BASE_URL", "")

    TROPIPAY_CLIENT_ID: str = os.getenv("TROPIPAY_CLIENT_ID", "")
    TROPIPAY_CLIENT_SECRET: str = os.getenv("TROPIPAY_CLIENT_SECRET", "")
    TROPIPAY_API_URL: str = os.getenv("TROPIPAY_API_URL", "https://tropipay-dev.herokuapp.com/api/v2")
    TROPIPAY_SHORT_URL_BASE: str = os.getenv("TROPIPAY_SHORT_URL_BASE", "https://tppay.me")

    MOCK_PAYMENT: bool = os.getenv("MOCK_PAYMENT", "false").lower() == "true"
    SKIP_SIGNATURE_VERIFICATION: bool = os.getenv("SKIP_SIGNATURE_VERIFICATION", "false").lower() == "true"
    CARD_PROCESSING_DELAY: float = 2.0

    BREVO_API_KEY: str = os.getenv("BREVO_API_KEY", "")
    BREVO_API_URL: str = os.getenv("BREVO_API_URL", "https://api.brevo.com/v3")
    BREVO_STORE_ID: str = os.getenv("BREVO_STORE_ID", "cantinaxl")

    HTTP_TIMEOUT: float = 30.0
    HTTP_RETRIES: int = 2

    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    CELERY_RESULT_BACKEND: str = os.getenv("CELERY_RESULT_BACKEND", "")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def webhook_url(self) -> str:
        if not self.WEBHOOK_BASE_URL:
            return ""
        return f"{self.WEBHOOK_BASE_URL.rstrip('/')}{self.API_V1_STR}/payments/webhook"

    @property
    def has_gateway_credentials(self) -> bool:
        return bool(self.TROPIPAY_CLIENT_ID and self.TROPIPAY_CLIENT_SECRET)

    def validate_for_startup(self) -> None:
        """Check the payment configuration before serving requests.

        Production refuses to start with missing gateway credentials, mock
        payments or the signature bypass. Other environments only warn.
        """
        problems = []
        if not self.MOCK_PAYMENT and not self.has_gateway_credentials:
            problems.append("TROPIPAY_CLIENT_ID/TROPIPAY_CLIENT_SECRET are not set")
        if self.is_production and self.MOCK_PAYMENT:
            problems.append("MOCK_PAYMENT is enabled")
        if self.SKIP_SIGNATURE_VERIFICATION:
            problems.append("SKIP_SIGNATURE_VERIFICATION is enabled")
        if not self.BREVO_API_KEY:
            logger.warning("BREVO_API_KEY is not set, CRM sync will be skipped")

        if not problems:
            return
        if self.is_production:
            raise ConfigurationError("; ".join(problems))
        for problem in problems:
            logger.warning(f"Payment configuration ({self.ENVIRONMENT}): {problem}")

settings = Settings()
