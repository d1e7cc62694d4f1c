# config.py - environment driven settings
import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME = os.getenv("DATABASE_NAME", "elearning")

    # Auth
    SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60))
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))
    RESET_TOKEN_EXPIRE_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", 10))
    VALIDATION_NUMBER_EXPIRE_MINUTES = int(os.getenv("VALIDATION_NUMBER_EXPIRE_MINUTES", 10))

    # HTTP
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    PORT = int(os.getenv("PORT", 8000))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    # also logs raw one-time codes when no mailer is configured
    DEBUG = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")


settings = Settings()
