import os
from functools import lru_cache

from dotenv import load_dotenv


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./zerowaste.db")
        self.DB_ECHO = _get_bool("DB_ECHO")

        self.JWT_SECRET = os.getenv("JWT_SECRET", "dev-change-me")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60))

        self.CORS_ORIGINS = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]

        self.DEFAULT_RADIUS_KM = float(os.getenv("DEFAULT_RADIUS_KM", 20))
        self.LOCATION_SEARCH_RADIUS_KM = float(os.getenv("LOCATION_SEARCH_RADIUS_KM", 10))

        self.MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", 5))
        self.R2_BUCKET = os.getenv("R2_BUCKET")
        self.CLOUDFLARE_ACCOUNT_ID = os.getenv("CLOUDFLARE_ACCOUNT_ID")

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    load_dotenv()
    return Settings()
