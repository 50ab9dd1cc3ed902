"""
Settings for the back-office application.
"""

from enum import Enum

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

SHOPEE_BASE_URL_PRODUCTION = "https://partner.shopeemobile.com"
SHOPEE_BASE_URL_SANDBOX = "https://partner.test-stable.shopeemobile.com"
SHOPEE_API_PREFIX = "/api/v2"

load_dotenv()


class MarketplaceType(str, Enum):
    """
    Marketplaces the back-office knows about.

    Only the ones with a registered adapter can be exported to.
    """

    SHOPEE = "shopee"
    MERCADOLIVRE = "mercadolivre"
    AMAZON = "amazon"
    TIKTOK = "tiktok"


class ShopeeSettings(BaseSettings):
    """
    Settings for the Shopee Open Platform.
    """

    partner_id: str = ""
    partner_key: str = ""
    redirect_uri: str = ""
    api_url: str = SHOPEE_BASE_URL_PRODUCTION
    request_timeout: float = 30.0
    max_retries: int = 1
    status_page_url: str = "http://localhost:3000/dashboard/marketplace/shopee"
    language: str = "pt-br"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SHOPEE_",
        extra="ignore",
    )


class AppSettings(BaseSettings):
    """
    Settings for the application itself: database and session tokens.
    """

    database_url: str = "sqlite:///./backoffice.db"
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
