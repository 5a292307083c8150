"""Configuration settings for the recommendation engine"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Recommendation Engine"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Redis Settings
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_SOCKET_TIMEOUT: float = 5.0

    @property
    def REDIS_URL(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Key layout
    REDIS_NAMESPACE: Optional[str] = "recengine"
    USER_COLLECTION: str = "users"

    # Recommendation Settings
    CATEGORIES: List[str] = []
    NEAREST_NEIGHBORS: Optional[int] = None
    FURTHEST_NEIGHBORS: Optional[int] = None
    RECOMMENDATIONS_TO_STORE: Optional[int] = None
    AUTO_ENQUEUE: bool = True

    # Celery Settings
    CELERY_BROKER_URL: str = "redis://redis:6379/2"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/3"

    @field_validator("CATEGORIES")
    @classmethod
    def check_categories(cls, value: List[str], info) -> List[str]:
        user_collection = info.data.get("USER_COLLECTION", "users")
        for category in value:
            if not category or ":" in category:
                raise ValueError(f"Invalid category name: {category!r}")
            if category == user_collection:
                raise ValueError(f"Category {category!r} collides with the user collection")
        return value

    @field_validator("NEAREST_NEIGHBORS", "FURTHEST_NEIGHBORS", "RECOMMENDATIONS_TO_STORE")
    @classmethod
    def check_bound(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("Bounds must be non-negative")
        return value

    def is_registered(self, category: str) -> bool:
        return category in self.CATEGORIES

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
