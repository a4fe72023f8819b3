"""
Base classes for the research agent architecture.

Agents (LLM-backed decision makers) and tools (evidence fetchers) share
one ResearchState per question, which accumulates evidence round by round.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set
from enum import Enum

from repo_research.models.schemas import FollowupPlan, QuestionAnalysis, RepoTarget


class AgentRole(Enum):
    """Defines the role of each agent in the system."""
    CLASSIFIER = "classifier"
    PLANNER = "planner"


class ToolType(Enum):
    """Evidence sources available to the controller."""
    REPO_SEARCH = "repo_search"
    EXTERNAL_EVIDENCE = "external_evidence"


@dataclass
class EvidenceBlock:
    """Non-empty evidence returned for one query."""
    query: str
    context_text: str
    sources: List[str] = field(default_factory=list)


@dataclass
class ResearchState:
    """
    Shared state for one question's research rounds.

    Accumulates evidence as rounds progress:
    Question -> Classifier -> Round 1 lookups -> Planner -> Round 2..N lookups
    """
    # Input
    question: str
    transcript: str = ""
    repo_targets: List[RepoTarget] = field(default_factory=list)

    # Round tracking
    round: int = 0
    max_rounds: int = 3
    external_enabled: bool = False

    # Decisions
    analysis: Optional[QuestionAnalysis] = None
    plan: Optional[FollowupPlan] = None

    # Accumulated evidence
    repo_blocks: List[EvidenceBlock] = field(default_factory=list)
    external_blocks: List[EvidenceBlock] = field(default_factory=list)
    seen_repo_queries: Set[str] = field(default_factory=set)
    seen_external_queries: Set[str] = field(default_factory=set)
    follow_up_questions: List[str] = field(default_factory=list)
    external_failures: List[str] = field(default_factory=list)
    initial_external_query: str = ""

    # Metadata
    errors: list = field(default_factory=list)
    execution_log: list = field(default_factory=list)

    def log(self, message: str) -> None:
        """Add entry to execution log."""
        self.execution_log.append(message)

    def add_error(self, error: str) -> None:
        """Record an error that occurred during execution."""
        self.errors.append(error)

    def add_repo_evidence(self, query: str, context_text: str, sources: List[str]) -> None:
        body = (context_text or "").strip()
        if body:
            self.repo_blocks.append(EvidenceBlock(query, body, list(sources)))

    def add_external_evidence(self, query: str, context_text: str, sources: List[str]) -> None:
        body = (context_text or "").strip()
        if body:
            self.external_blocks.append(EvidenceBlock(query, body, list(sources)))


@dataclass
class ToolResult:
    """Result returned by a tool after execution."""
    success: bool
    data: Any = None
    error: Optional[str] = None


class BaseTool(ABC):
    """
    Base class for all tools.

    Tools fetch evidence for one query:
    - RepoSearchTool: Literal search over local repositories
    - ExternalEvidenceTool: Docs QA lookup
    """

    name: str = "base_tool"
    description: str = "Base tool description"

    @abstractmethod
    async def execute(self, state: ResearchState, **kwargs) -> ToolResult:
        """
        Execute the tool's action.

        Args:
            state: Shared research state
            **kwargs: Tool-specific parameters

        Returns:
            ToolResult with success status and data/error
        """
        pass


class BaseAgent(ABC):
    """
    Base class for all agents.

    Agents are LLM-powered components that make decisions:
    - ClassifierAgent: Decides whether the question needs a repo lookup
    - PlannerAgent: Proposes follow-up queries or clarifying questions
    """

    role: AgentRole

    def __init__(self, llm_client: Any):
        """
        Initialize agent with LLM client.

        Args:
            llm_client: Client exposing async generate(prompt, system_prompt)
        """
        self.llm = llm_client

    @abstractmethod
    async def run(self, state: ResearchState) -> ResearchState:
        """
        Execute the agent's logic.

        Args:
            state: Shared research state with accumulated data

        Returns:
            Updated state with the agent's output
        """
        pass

    async def _call_llm(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Make a call to the LLM.

        Args:
            prompt: User prompt to send
            system_prompt: Optional system prompt

        Returns:
            LLM response text
        """
        return await self.llm.generate(prompt, system_prompt)
