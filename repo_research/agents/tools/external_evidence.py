"""
External Evidence Tool - Asks the external docs service about a query.
"""

import logging

from repo_research.agents.base import BaseTool, ResearchState, ToolResult, ToolType
from repo_research.services.external_evidence import (
    EvidenceFailure,
    EvidenceProvider,
    FailureKind,
)


logger = logging.getLogger(__name__)


class ExternalEvidenceTool(BaseTool):
    """
    Runs one provider lookup.

    The ToolResult data is always an EvidenceSuccess or EvidenceFailure; a
    provider that raises anyway is reported as an UNKNOWN failure.
    """

    name = ToolType.EXTERNAL_EVIDENCE.value
    description = "Looks up external documentation evidence for a query"

    def __init__(self, provider: EvidenceProvider):
        self.provider = provider

    def should_query(self, question: str, transcript: str = "") -> bool:
        try:
            return self.provider.should_query(question, transcript)
        except Exception as e:
            logger.warning(f"External evidence eligibility check failed: {e}")
            return False

    async def execute(self, state: ResearchState, **kwargs) -> ToolResult:
        query = (kwargs.get("query") or state.question or "").strip()
        state.log(f"ExternalEvidence: Asking '{query[:50]}'")

        try:
            result = await self.provider.query(query, state.transcript)
        except Exception as e:
            error_msg = f"External evidence failed: {str(e)}"
            state.add_error(error_msg)
            failure = EvidenceFailure(FailureKind.UNKNOWN, str(e))
            return ToolResult(success=False, data=failure, error=error_msg)

        if isinstance(result, EvidenceFailure):
            return ToolResult(success=False, data=result, error=result.error or result.kind.value)
        return ToolResult(success=True, data=result)
