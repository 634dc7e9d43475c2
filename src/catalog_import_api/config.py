"""Configuration settings for the catalog import API."""
import os
from typing import List, Literal


EnvironmentType = Literal["development", "staging", "production"]


def _csv_env(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"

    # Remote catalog backend
    CATALOG_API_BASE: str = "http://localhost:8000"
    CATALOG_API_TOKEN: str | None = None
    CATALOG_API_USERNAME: str | None = None
    CATALOG_API_PASSWORD: str | None = None
    CATALOG_API_TIMEOUT: float = 30.0

    # Import behaviour
    IMAGE_COLUMN_KEYS: List[str] = ["imageFileName", "imagefilename", "ImageFileName"]
    MAX_IMAGES_PER_UPLOAD: int = 200
    PREVIEW_MAX_SIZE: int = 160

    # HTTP
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Operator authentication
    API_KEYS: List[str] = []
    AUTH_JWKS_URL: str = ""
    AUTH_AUDIENCE: str = ""

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"

        # Remote catalog backend
        self.CATALOG_API_BASE = os.getenv("CATALOG_API_BASE", "http://localhost:8000").rstrip("/")
        self.CATALOG_API_TOKEN = os.getenv("CATALOG_API_TOKEN")
        self.CATALOG_API_USERNAME = os.getenv("CATALOG_API_USERNAME")
        self.CATALOG_API_PASSWORD = os.getenv("CATALOG_API_PASSWORD")
        try:
            self.CATALOG_API_TIMEOUT = float(os.getenv("CATALOG_API_TIMEOUT", "30"))
        except ValueError:
            self.CATALOG_API_TIMEOUT = 30.0

        # Import behaviour
        self.IMAGE_COLUMN_KEYS = _csv_env("IMAGE_COLUMN_KEYS", "imageFileName,imagefilename,ImageFileName")
        try:
            self.MAX_IMAGES_PER_UPLOAD = int(os.getenv("MAX_IMAGES_PER_UPLOAD", "200"))
        except ValueError:
            self.MAX_IMAGES_PER_UPLOAD = 200
        try:
            self.PREVIEW_MAX_SIZE = int(os.getenv("PREVIEW_MAX_SIZE", "160"))
        except ValueError:
            self.PREVIEW_MAX_SIZE = 160

        # HTTP
        self.CORS_ORIGINS = _csv_env("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

        # Operator authentication
        self.API_KEYS = _csv_env("API_KEYS", "")
        self.AUTH_JWKS_URL = os.getenv("AUTH_JWKS_URL", "")
        self.AUTH_AUDIENCE = os.getenv("AUTH_AUDIENCE", "")


settings = Settings()
