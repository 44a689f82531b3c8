# gym_booking/config.py
from typing import List, Literal

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./gym.db"
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: float = 60  # supports decimal durations

    # Where the entity store is persisted: SQL tables, a JSON snapshot, or nowhere
    SYNC_BACKEND: Literal["database", "snapshot", "memory"] = "database"
    SNAPSHOT_PATH: str = "gym_data.json"

    PAYMENT_SUCCESS_RATE: float = 0.9
    SEED_DEMO_DATA: bool = False

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"

settings = Settings()
