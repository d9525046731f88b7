"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Database
    DATABASE_URL: str
    
    # Redis (empty disables caching and keeps rate limiting in memory)
    REDIS_URL: str = ""
    
    # Application
    APP_NAME: str = "Assessment Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    
    # Auth
    JWT_SECRET_KEY: str = "dev-secret-key"
    JWT_ALGORITHM: str = "HS256"
    
    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000
    
    # Quiz Settings
    DEFAULT_QUESTION_COUNT: int = 10
    MAX_QUIZ_QUESTIONS: int = 50
    GENERATED_QUIZ_TIME_LIMIT: float = 15  # minutes
    GENERATED_PASS_THRESHOLD: float = 70
    FALLBACK_MINUTES_PER_QUESTION: float = 1.5
    FALLBACK_MAX_TIME_LIMIT: float = 30  # minutes
    
    # Scoring: share of points given to a non-empty fill-in-the-blank answer
    # until it is graded manually
    FILL_BLANK_CREDIT: float = 0.5
    
    # Reporting
    PROGRESS_CACHE_TTL: int = 300  # 5 minutes
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
