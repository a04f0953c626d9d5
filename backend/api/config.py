"""
Application Configuration
Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = "sqlite:///./data/job_postings.db"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    # CORS Configuration
    cors_origins: List[str] = ["*"]

    # Crawler Configuration
    crawler_max_attempts: int = 3            # Page loads per URL before giving up
    crawler_backoff_seconds: float = 1.0     # Linear backoff step between attempts
    crawler_page_load_timeout: float = 15.0  # Navigation + readiness budget per attempt
    crawler_task_timeout: float = 60.0       # Completion budget per detail task
    crawler_min_workers: int = 3
    crawler_max_workers: int = 8
    crawler_inter_site_delay: float = 3.0
    crawler_max_pages: Optional[int] = None  # Overrides every site's page cap when set
    crawler_headless: bool = True
    crawler_block_stylesheets: bool = False

    # Embedding Configuration (OpenAI-compatible /embeddings endpoint)
    embedding_url: Optional[str] = None
    embedding_model: str = "text-embedding-3-small"
    embedding_api_key: Optional[str] = None
    embedding_timeout: float = 30.0

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Paths
    @property
    def log_dir(self) -> Path:
        """Get the log directory path."""
        return Path(__file__).parent.parent.parent / "logs"

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.log_dir / "crawler.log"

    @property
    def data_dir(self) -> Path:
        """Get the data directory path."""
        return Path(__file__).parent.parent / "data"

    class Config:
        # Only load .env if it exists to avoid permission errors
        env_file = ".env" if Path(".env").exists() else None
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


# Global settings instance
settings = Settings()
