"""
Core Module - Configuration and dependency injection.
"""

from repo_research.core.config import Settings, get_settings
from repo_research.core.dependencies import (
    set_llm_client,
    get_llm_client,
    get_repo_search_service,
    get_repo_search_tool,
    get_evidence_provider,
    get_research_controller,
    shutdown_services,
)

__all__ = [
    "Settings",
    "get_settings",
    "set_llm_client",
    "get_llm_client",
    "get_repo_search_service",
    "get_repo_search_tool",
    "get_evidence_provider",
    "get_research_controller",
    "shutdown_services",
]
