# studysphere/core/config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "StudySphere"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Frontend origins allowed by CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Database
    DATABASE_URL: str = "sqlite:///./studysphere.db"

    # Google Gemini
    GOOGLE_GEMINI_API_KEY: Optional[str] = None
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TEXT_MODEL: str = "gemini-2.5-flash"
    GEMINI_VISION_MODEL: str = "gemini-2.0-flash-exp"

    # Autumn billing
    AUTUMN_SECRET_KEY: Optional[str] = None
    AUTUMN_API_URL: str = "https://api.useautumn.com/v1"

    # Supabase auth
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    AUTH_COOKIE_NAME: str = "sb-access-token"
    LOGIN_PATH: str = "/login"
    PROTECTED_PATHS: list[str] = ["/chat", "/archive", "/settings"]
