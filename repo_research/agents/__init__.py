"""
Agent Architecture for Repo Research
====================================

FLOW OVERVIEW:
--------------
1. A question arrives with an optional transcript and a list of repos
2. Classifier Agent decides whether the repos are worth searching
3. Round 1 runs the repo search and the external lookup in parallel
4. Planner Agent (LLM mode only) proposes follow-up queries or
   clarifying questions for rounds 2..N
5. Research Controller joins the evidence and reports warnings

ARCHITECTURE:
-------------
                    ┌─────────────────┐
                    │    Question     │
                    └────────┬────────┘
                             │
                    ┌────────▼────────┐
                    │   Classifier    │  ← repo lookup needed?
                    └────────┬────────┘
                             │
              ┌──────────────┴──────────────┐
              │                             │
       ┌──────▼──────┐               ┌──────▼──────┐
       │ RepoSearch  │               │  External   │  ← Tools
       │    Tool     │               │  Evidence   │
       └──────┬──────┘               └──────┬──────┘
              │                             │
              └──────────────┬──────────────┘
                             │
                    ┌────────▼────────┐
                    │     Planner     │  ← more rounds?
                    └────────┬────────┘
                             │
                    ┌────────▼────────┐
                    │CollectedEvidence│
                    └─────────────────┘

USAGE:
------
    from repo_research.agents import ResearchController, RepoSearchTool
    from repo_research.services import RepoSearchService
    from repo_research.models.schemas import RepoTarget

    controller = ResearchController(repo_tool=RepoSearchTool(RepoSearchService()))

    evidence = await controller.collect_evidence(
        question="Where is ParseConfig called?",
        repo_targets=[RepoTarget(path="/src/server", name="server")],
    )

    print(evidence.repo_context)
"""

from repo_research.agents.base import (
    BaseAgent,
    BaseTool,
    EvidenceBlock,
    ResearchState,
    ToolResult,
)
from repo_research.agents.classifier import ClassifierAgent, analyze_question
from repo_research.agents.planner import PlannerAgent
from repo_research.agents.controller import ResearchController
from repo_research.agents.tools import ExternalEvidenceTool, RepoSearchTool

__all__ = [
    # Base classes
    "BaseAgent",
    "BaseTool",
    "EvidenceBlock",
    "ResearchState",
    "ToolResult",
    # Agents
    "ClassifierAgent",
    "PlannerAgent",
    "ResearchController",
    "analyze_question",
    # Tools
    "RepoSearchTool",
    "ExternalEvidenceTool",
]
