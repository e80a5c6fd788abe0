"""Application settings and configuration"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Impact Review Prep"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database (document store for assessments, PR snapshots and profiles)
    DATABASE_URL: str = "sqlite:///./reviewprep.db"

    # GitHub API
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_API_VERSION: str = "2022-11-28"
    GITHUB_TIMEOUT_SECONDS: float = 30.0
    USER_AGENT: str = "ImpactReviewPrep/1.0"

    # Search paging and enrichment
    GITHUB_SEARCH_PER_PAGE: int = 100
    GITHUB_ENRICH_BATCH_SIZE: int = 5

    # Rate-limit recovery (single retry after the reset window)
    GITHUB_RATE_LIMIT_BUFFER_SECONDS: float = 1.0
    GITHUB_RATE_LIMIT_MAX_WAIT_SECONDS: float = 120.0

    # LLM provider for clustering / mapping / question generation
    LLM_PROVIDER: str = "openai"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-20241022"
    LLM_MAX_TOKENS: int = 4000
    LLM_STRUCTURED_TEMPERATURE: float = 0.3
    LLM_QUESTION_TEMPERATURE: float = 0.5

    # PR snapshot cache
    LOCAL_CACHE_DIR: str = ".reviewprep-cache"
    PR_CACHE_TTL_HOURS: int = 24

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
