"""
Application settings and configuration management.
"""

from enum import Enum
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Resolver settings with environment variable support (``POMRESOLVER_*``)."""

    # Application settings
    app_name: str = Field(default="POM Resolver", description="Application name")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_dir: str = Field(default="./logs", description="Directory for JSON log files")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8080, description="API port")

    # Repository settings
    repository_urls: List[str] = Field(
        default=["https://repo1.maven.org/maven2"],
        description="Ordered repository base URLs; file: URLs are local repositories"
    )
    cache_dir: Path = Field(
        default=Path("./data/maven-cache"),
        description="Local cache root for remote descriptors"
    )
    remote_fetch_enabled: bool = Field(default=True, description="Allow fetching missing descriptors")

    # Fetch settings
    request_timeout_seconds: float = Field(default=30.0, description="HTTP request timeout")
    fetch_chunk_size: int = Field(default=64 * 1024, description="Streaming chunk size in bytes")
    user_agent: str = Field(default="pomresolver/1.0", description="HTTP User-Agent header")

    # Profile activation
    platform_version: str = Field(
        default="17",
        description="Runtime version string matched against <jdk> profile activation"
    )

    model_config = {
        "env_prefix": "POMRESOLVER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    def validate_settings(self) -> List[str]:
        """Validate settings and return list of warnings."""
        warnings = []

        if not self.repository_urls:
            warnings.append("No repositories configured - every lookup will yield empty metadata")

        for url in self.repository_urls:
            if url.startswith("http://"):
                warnings.append(f"Repository {url} uses plain HTTP")

        if self.request_timeout_seconds <= 0:
            warnings.append("Request timeout must be positive")

        if self.fetch_chunk_size < 1024:
            warnings.append("Very small fetch chunk size will slow downloads")

        return warnings


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def reload_settings() -> Settings:
    """Re-read settings from the environment."""
    global settings
    settings = Settings()
    return settings
