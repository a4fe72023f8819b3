"""
Application Configuration - Environment settings and constants.

Loads configuration from environment variables with sensible defaults.
Uses Pydantic Settings for validation and type safety.

List-valued settings (REPO_PATHS, EXTERNAL_KEYWORDS, ALLOWED_ORIGINS) accept
either a JSON array or a comma separated string.
"""

import json
from typing import Annotated, List, Literal
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Usage:
        from repo_research.core.config import get_settings
        settings = get_settings()
    """

    # Application
    app_name: str = "Repo Research"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # HTTP Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    api_prefix: str = "/api/v1"
    allowed_origins: Annotated[List[str], NoDecode] = ["*"]

    # "llm" enables the follow-up planner rounds; "fallback" runs round 1 only
    mode: Literal["llm", "fallback"] = "fallback"

    # Repository search
    repo_paths: Annotated[List[str], NoDecode] = []
    repo_max_files: int = 8000
    repo_max_file_bytes: int = 1024 * 1024
    repo_max_snippets: int = 20
    repo_snippet_context_lines: int = 12
    repo_max_context_chars: int = 80_000

    # Worker pool
    repo_search_workers: int = 2
    repo_search_queue_max: int = 8
    repo_search_use_pool: bool = True

    # Research controller
    research_max_rounds: int = 3
    research_max_sources: int = 20

    # External evidence (docs QA service)
    external_enabled: bool = False
    external_base_url: str = "https://tidb.ai"
    external_chat_engine: str = "default"
    external_timeout_seconds: float = 120.0
    external_max_context_chars: int = 24_000
    external_max_sources: int = 12
    external_keywords: Annotated[List[str], NoDecode] = []

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("repo_paths", "external_keywords", "allowed_origins", mode="before")
    @classmethod
    def split_list(cls, v):
        """Accept comma/newline separated strings as well as JSON arrays."""
        if isinstance(v, str):
            raw = v.strip()
            if raw.startswith("["):
                return json.loads(raw)
            return [p.strip() for p in raw.replace("\n", ",").split(",") if p.strip()]
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
