"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Database
    DATABASE_URL: str
    DB_POOL_TIMEOUT: int = 10  # seconds
    
    # Redis (caching disabled when unset)
    REDIS_URL: Optional[str] = None
    
    # Application
    APP_NAME: str = "CourseTrack"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]
    
    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000
    
    # Progress updates
    PROGRESS_LOCK_TIMEOUT: float = 5.0  # seconds
    MAX_CONFLICT_RETRIES: int = 3
    
    # Reporting
    LEADERBOARD_CACHE_TTL: int = 60  # seconds
    DEFAULT_LEADERBOARD_LIMIT: int = 10
    RECENT_ACTIVITY_LIMIT: int = 5
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
