"""
Tools for the research controller.

Tools are executors that fetch evidence for one query:
- RepoSearchTool: Literal search over local repositories
- ExternalEvidenceTool: External docs QA lookup
"""

from repo_research.agents.tools.repo_search import RepoSearchTool
from repo_research.agents.tools.external_evidence import ExternalEvidenceTool

__all__ = [
    "RepoSearchTool",
    "ExternalEvidenceTool",
]
