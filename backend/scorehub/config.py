"""
backend/scorehub/config.py

Purpose:
    Central settings loading for backend services.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "scorehub"
    JWT_SECRET: str
    JWT_SECRET_OLD: str = ""  # Set during rotation; cleared once old tokens expired
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # JWT settings
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # Accounts
    INITIAL_BALANCE: float = 1000.0
    OTP_EXPIRE_MINUTES: int = 10
    RESET_TOKEN_EXPIRE_MINUTES: int = 10

    # Outgoing mail (verification + password reset codes)
    SMTP_HOST: str = "smtp.mailtrap.io"
    SMTP_PORT: int = 2525
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_STARTTLS: bool = True
    MAIL_FROM: str = "ScoreHub <noreply@scorehub.com>"

    # football-data.org (league matches, standings, final scores)
    FOOTBALL_DATA_API_KEY: str = ""
    FOOTBALL_DATA_BASE_URL: str = "https://api.football-data.org/v4"
    FOOTBALL_DATA_SEASON: int = 2024

    # sofascore (upcoming fixtures + match pages for event scraping)
    SOFASCORE_API_URL: str = "https://api.sofascore.com/api/v1"
    SOFASCORE_WEB_URL: str = "https://www.sofascore.com"

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 15.0
    HTTP_MAX_RETRIES: int = 1
    HTTP_RETRY_BASE_DELAY: float = 2.0

    # Match ingestion
    MATCH_STALE_SECONDS: int = 300  # 5 minutes
    SCRAPER_ENABLED: bool = True
    SCRAPER_INTERVAL_MINUTES: int = 5

    # Settlement result sources: "simulated" | "football_data"
    BET_RESULT_SOURCE: str = "simulated"
    PREDICTION_RESULT_SOURCE: str = "simulated"

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
