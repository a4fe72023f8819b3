"""
API Request Models - Pydantic models for request validation.
"""

from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from repo_research.models.schemas import RepoTarget


class SearchRequest(BaseModel):
    """
    Request to search local repositories.

    Example:
        {
            "query": "where is ParseConfig called",
            "repos": [{"path": "/src/server", "name": "server"}],
            "max_snippets": 10
        }
    """
    query: str = Field(
        ...,
        max_length=2000,
        description="Free-text search query"
    )
    repos: Optional[List[RepoTarget]] = Field(
        default=None,
        description="Repositories to search (defaults to configured REPO_PATHS)"
    )
    max_files: Optional[int] = Field(default=None, ge=1, description="Files indexed per repo")
    max_snippets: Optional[int] = Field(default=None, ge=1, le=200, description="Snippets returned")
    context_lines: Optional[int] = Field(default=None, ge=0, le=200, description="Lines around each match")
    max_context_chars: Optional[int] = Field(default=None, ge=1, description="Context text budget")


class ResearchRequest(BaseModel):
    """
    Request to collect evidence for a question.

    Example:
        {
            "question": "Why does ParseConfig fail on empty files?",
            "transcript": "user: the server panics at startup",
            "repos": [{"path": "/src/server", "name": "server"}]
        }
    """
    question: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="Question to research"
    )
    transcript: str = Field(
        default="",
        max_length=20000,
        description="Recent chat transcript for context"
    )
    repos: Optional[List[RepoTarget]] = Field(
        default=None,
        description="Repositories to search (defaults to configured REPO_PATHS)"
    )

    @field_validator("question")
    @classmethod
    def validate_question(cls, v: str) -> str:
        """Reject blank questions."""
        v = v.strip()
        if not v:
            raise ValueError("Question must not be blank")
        return v
