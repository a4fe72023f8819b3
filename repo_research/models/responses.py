"""
API Response Models - Pydantic models for API responses.
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    environment: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SearchResponse(BaseModel):
    """
    Response from a repository search.

    Example:
        {
            "success": true,
            "query": "ParseConfig",
            "context_text": "Repo: server\\nFile: /src/server/a.go:10\\n...",
            "sources": ["/src/server/a.go:10"]
        }
    """
    success: bool = True
    query: str
    context_text: str = ""
    sources: List[str] = Field(default_factory=list)


class ResearchResponse(BaseModel):
    """
    Evidence collected for a question.

    Example:
        {
            "success": true,
            "repo_context": "Query: ParseConfig\\nRepo: server\\n...",
            "external_context": null,
            "sources": ["/src/server/a.go:10"],
            "follow_up_questions": [],
            "warnings": []
        }
    """
    success: bool = True
    repo_context: Optional[str] = None
    external_context: Optional[str] = None
    sources: List[str] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response.

    Example:
        {
            "success": false,
            "error": "Repository not found",
            "error_code": "REPO_NOT_FOUND",
            "details": {...}
        }
    """
    success: bool = False
    error: str
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
