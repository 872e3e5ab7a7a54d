from pydantic_settings import BaseSettings
from typing import List, Literal
import logging
import os


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "tail-authz"
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = False
    TESTING: bool = False

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./tailauth.db"
    )

    # JWT (verification only; tokens are issued by the auth service)
    JWT_SECRET: str = os.getenv("JWT_SECRET", "your-secret-key-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    # Authorization
    # "membership": a user is OWNER unless they hold an ACCEPTED membership.
    # "resource": legacy rule, a user is OWNER if they own at least one project.
    OWNER_RESOLUTION: Literal["membership", "resource"] = "membership"
    # Answer MEMBER-scoped resource denials with 404 so existence is not leaked
    HIDE_FORBIDDEN_RESOURCES: bool = True

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"


settings = Settings()

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(settings.APP_NAME)
