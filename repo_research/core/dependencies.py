"""
Dependencies - Dependency injection for services and components.

Provides singleton instances of the search service, the external evidence
provider and the research controller, all configured from Settings.

An LLM client is optional. Register one with set_llm_client(); it is only
used when MODE=llm, and enables the classifier and follow-up planner.
"""

from typing import Any, Optional

from repo_research.core.config import get_settings
from repo_research.agents.classifier import ClassifierAgent
from repo_research.agents.controller import ResearchController
from repo_research.agents.planner import PlannerAgent
from repo_research.agents.tools.external_evidence import ExternalEvidenceTool
from repo_research.agents.tools.repo_search import RepoSearchTool
from repo_research.services.external_evidence import DocsQAProvider, EvidenceProvider
from repo_research.services.worker_pool import RepoSearchService


# Singleton instances
_llm_client: Any = None
_repo_search_service: Optional[RepoSearchService] = None
_evidence_provider: Optional[EvidenceProvider] = None
_research_controller: Optional[ResearchController] = None


def set_llm_client(client: Any) -> None:
    """Register the LLM client (anything with async generate(prompt, system_prompt))."""
    global _llm_client, _research_controller
    _llm_client = client
    _research_controller = None


def get_llm_client() -> Any:
    """Return the LLM client if MODE=llm and one is registered."""
    settings = get_settings()
    if settings.mode != "llm":
        return None
    return _llm_client


def get_repo_search_service() -> RepoSearchService:
    """Get repo search service instance (owns the worker pool)."""
    global _repo_search_service
    if _repo_search_service is None:
        settings = get_settings()
        _repo_search_service = RepoSearchService(
            workers=settings.repo_search_workers,
            queue_max=settings.repo_search_queue_max,
            use_pool=settings.repo_search_use_pool,
        )
    return _repo_search_service


def get_repo_search_tool() -> RepoSearchTool:
    """Build a repo search tool bound to the configured limits."""
    settings = get_settings()
    return RepoSearchTool(
        service=get_repo_search_service(),
        max_files=settings.repo_max_files,
        max_file_bytes=settings.repo_max_file_bytes,
        max_snippets=settings.repo_max_snippets,
        context_lines=settings.repo_snippet_context_lines,
        max_context_chars=settings.repo_max_context_chars,
    )


def get_evidence_provider() -> Optional[EvidenceProvider]:
    """Get the external evidence provider, or None when disabled."""
    global _evidence_provider
    settings = get_settings()
    if not settings.external_enabled:
        return None
    if _evidence_provider is None:
        _evidence_provider = DocsQAProvider(
            base_url=settings.external_base_url,
            chat_engine=settings.external_chat_engine,
            timeout_seconds=settings.external_timeout_seconds,
            max_context_chars=settings.external_max_context_chars,
            max_sources=settings.external_max_sources,
            keywords=settings.external_keywords,
        )
    return _evidence_provider


def get_research_controller() -> ResearchController:
    """Get research controller instance."""
    global _research_controller
    if _research_controller is None:
        settings = get_settings()
        llm = get_llm_client()
        provider = get_evidence_provider()
        _research_controller = ResearchController(
            repo_tool=get_repo_search_tool(),
            external_tool=ExternalEvidenceTool(provider) if provider is not None else None,
            classifier=ClassifierAgent(llm) if llm is not None else None,
            planner=PlannerAgent(llm) if llm is not None else None,
            max_rounds=settings.research_max_rounds,
            max_sources=settings.research_max_sources,
            repo_max_context_chars=settings.repo_max_context_chars,
            external_max_context_chars=settings.external_max_context_chars,
        )
    return _research_controller


async def shutdown_services() -> None:
    """Close the worker pool and drop all singletons."""
    global _repo_search_service, _evidence_provider, _research_controller
    if _repo_search_service is not None:
        await _repo_search_service.aclose()
    _repo_search_service = None
    _evidence_provider = None
    _research_controller = None
