"""
Repo Search Tool - Literal search over the selected local repositories.

Wraps RepoSearchService so the controller sees every outcome as a
ToolResult: pool saturation comes back as an empty (successful) result,
while a closed pool or crashed worker becomes a failed result.
"""

from typing import Sequence

from repo_research.agents.base import BaseTool, ResearchState, ToolResult, ToolType
from repo_research.models.schemas import RepoTarget
from repo_research.services.multi_search import RepoSearchRequest
from repo_research.services.worker_pool import RepoSearchService


class RepoSearchTool(BaseTool):
    """
    Searches local repositories for one query.

    Limits are fixed at construction; the target repos come from the
    research state unless passed explicitly.
    """

    name = ToolType.REPO_SEARCH.value
    description = "Searches local repositories for lines matching a query"

    def __init__(
        self,
        service: RepoSearchService,
        max_files: int = 8000,
        max_file_bytes: int = 1024 * 1024,
        max_snippets: int = 20,
        context_lines: int = 12,
        max_context_chars: int = 80_000,
    ):
        self.service = service
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes
        self.max_snippets = max_snippets
        self.context_lines = context_lines
        self.max_context_chars = max_context_chars

    def build_request(self, query: str, repos: Sequence[RepoTarget]) -> RepoSearchRequest:
        return RepoSearchRequest(
            repos=list(repos),
            query=query,
            max_files=self.max_files,
            max_file_bytes=self.max_file_bytes,
            max_snippets=self.max_snippets,
            context_lines=self.context_lines,
            max_context_chars=self.max_context_chars,
        )

    async def execute(self, state: ResearchState, **kwargs) -> ToolResult:
        """
        Search for a query across repositories.

        Args:
            state: Research state (supplies repo targets)
            **kwargs:
                query: Search query (defaults to state.question)
                repos: Override for state.repo_targets

        Returns:
            ToolResult whose data is an AggregatedResult
        """
        query = (kwargs.get("query") or state.question or "").strip()
        repos = kwargs.get("repos") or state.repo_targets

        state.log(f"RepoSearch: Searching for '{query[:50]}' in {len(repos)} repos")

        try:
            result = await self.service.search(self.build_request(query, repos))
        except Exception as e:
            error_msg = f"Repo search failed: {str(e)}"
            state.add_error(error_msg)
            return ToolResult(success=False, error=error_msg)

        state.log(f"RepoSearch: {len(result.sources)} sources for '{query[:50]}'")
        return ToolResult(success=True, data=result)
