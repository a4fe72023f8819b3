"""
Core Domain Schemas - Shared data models used across the application.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator


MAX_PLANNED_QUERIES = 2
MAX_ASK_USER = 3
MAX_QUERY_CHARS = 120
MAX_QUESTION_CHARS = 200


def normalize_list(raw: Any, max_items: int, max_chars: int) -> List[str]:
    """Keep trimmed, unique, non-empty strings, capped in count and length."""
    if not isinstance(raw, list):
        return []
    out: List[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        value = item.strip()[:max_chars]
        if not value or value in out:
            continue
        out.append(value)
        if len(out) >= max_items:
            break
    return out


class RepoTarget(BaseModel):
    """A local repository eligible for search."""
    path: str
    name: str = ""
    variant: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        """Human-readable repo label used in context blocks."""
        return (self.display_name or self.name or "").strip()


class QuestionAnalysis(BaseModel):
    """Round-one classification of a question."""
    is_code_related: bool = False
    needs_repo_lookup: bool = False
    search_query: str = ""


class FollowupPlan(BaseModel):
    """
    Planner output for one research round.

    Any field that is missing or malformed takes its safe default, so an
    empty dict parses to "done, nothing more to do".
    """
    done: bool = True
    repo_queries: List[str] = Field(default_factory=list)
    external_queries: List[str] = Field(default_factory=list)
    ask_user: List[str] = Field(default_factory=list)

    @field_validator("done", mode="before")
    @classmethod
    def coerce_done(cls, v):
        return v if isinstance(v, bool) else True

    @field_validator("repo_queries", "external_queries", mode="before")
    @classmethod
    def clean_queries(cls, v):
        return normalize_list(v, MAX_PLANNED_QUERIES, MAX_QUERY_CHARS)

    @field_validator("ask_user", mode="before")
    @classmethod
    def clean_questions(cls, v):
        return normalize_list(v, MAX_ASK_USER, MAX_QUESTION_CHARS)


class CollectedEvidence(BaseModel):
    """Everything the research controller gathered for one question."""
    repo_context: Optional[str] = None
    external_context: Optional[str] = None
    sources: List[str] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
