"""
Application Settings for BrainDump

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Literal, Optional
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    LLM_PROVIDER controls which service categorizes brain dumps:
    - deepseek: DeepSeek chat completions (OpenAI-compatible, default)
    - gemini: Google Gemini via google.genai

    Missing AI or PayPal credentials do not stop the app from booting:
    categorization falls back to a plain note and billing endpoints
    report a descriptive error instead.
    """

    # Supabase Configuration
    supabase_url: str
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: str
    supabase_jwt_secret: Optional[str] = None

    # LLM Configuration
    llm_provider: Literal["deepseek", "gemini"] = "deepseek"
    deepseek_api_key: Optional[str] = None
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-chat"

    # Google AI Configuration (accepts GOOGLE_API_KEY or GEMINI_API_KEY)
    google_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    transcription_model: str = "gemini-2.0-flash"

    ai_temperature: float = 0.3
    ai_max_tokens: int = 300
    ai_timeout_seconds: float = 30.0

    # PayPal Configuration
    paypal_client_id: Optional[str] = None
    paypal_client_secret: Optional[str] = None
    paypal_base_url: str = "https://api-m.sandbox.paypal.com"
    paypal_product_id_fallback: str = "BRAINDUMP_PREMIUM"
    paypal_plan_price: str = "8.00"
    paypal_currency: str = "USD"
    paypal_timeout_seconds: float = 30.0

    # Quota Configuration
    free_daily_dump_limit: int = Field(default=10, ge=1)
    premium_fallback_days: int = 30

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    admin_api_key: Optional[str] = None

    # CORS Configuration
    frontend_url: str = "http://localhost:5173"
    allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Database Configuration (SQLModel/SQLAlchemy)
    supabase_password: Optional[str] = None
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def normalize_api_keys(self) -> "Settings":
        """Normalize gemini_api_key to google_api_key."""
        if not self.google_api_key and self.gemini_api_key:
            self.google_api_key = self.gemini_api_key
        return self

    @property
    def llm_api_key(self) -> Optional[str]:
        """API key for the selected categorization provider."""
        if self.llm_provider == "gemini":
            return self.google_api_key
        return self.deepseek_api_key

    @property
    def paypal_configured(self) -> bool:
        return bool(self.paypal_client_id and self.paypal_client_secret)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
