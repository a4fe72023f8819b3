"""
Research Controller - Collects evidence for a question over several rounds.

COMPLETE FLOW:
==============
1. Question + transcript + repo targets
        │
        ▼
2. ROUND 1
   - Classifier decides whether the repos are worth searching
   - External provider decides whether it is worth asking
   - Both lookups run in parallel
        │
        ▼
3. ROUNDS 2..max_rounds (only with a planner)
   - Planner proposes new queries or clarifying questions
   - Clarifying questions -> stop
   - Unseen queries run in parallel; no new queries -> stop
   - done -> stop after this round
        │
        ▼
4. Join blocks per source, merge sources, add warnings
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from repo_research.agents.base import ResearchState, ToolResult
from repo_research.agents.classifier import ClassifierAgent, analyze_question
from repo_research.agents.evidence import join_blocks, merge_sources
from repo_research.agents.planner import PlannerAgent
from repo_research.agents.tools.external_evidence import ExternalEvidenceTool
from repo_research.agents.tools.repo_search import RepoSearchTool
from repo_research.models.schemas import (
    MAX_ASK_USER,
    MAX_PLANNED_QUERIES,
    CollectedEvidence,
    RepoTarget,
)
from repo_research.services.external_evidence import EvidenceFailure, FailureKind


logger = logging.getLogger(__name__)

DEFAULT_EXTERNAL_FAILURE = "external evidence returned no usable content"


class ResearchController:
    """
    Coordinates classifier, planner and evidence tools for one question.

    Evidence failures never propagate: every lookup is wrapped and a failed
    lookup simply contributes nothing to the round.
    """

    def __init__(
        self,
        repo_tool: Optional[RepoSearchTool] = None,
        external_tool: Optional[ExternalEvidenceTool] = None,
        classifier: Optional[ClassifierAgent] = None,
        planner: Optional[PlannerAgent] = None,
        max_rounds: int = 3,
        max_sources: int = 20,
        repo_max_context_chars: int = 80_000,
        external_max_context_chars: int = 24_000,
    ):
        """
        Args:
            repo_tool: Repository search tool (None disables repo lookups)
            external_tool: External evidence tool (None disables it)
            classifier: Optional LLM classifier; heuristics are used otherwise
            planner: Optional planner; without one only round 1 runs
            max_rounds: Upper bound on research rounds
            max_sources: Cap on merged sources
            repo_max_context_chars: Budget for the joined repo context
            external_max_context_chars: Budget for the joined external context
        """
        self.repo_tool = repo_tool
        self.external_tool = external_tool
        self.classifier = classifier
        self.planner = planner
        self.max_rounds = max(1, max_rounds)
        self.max_sources = max_sources
        self.repo_max_context_chars = repo_max_context_chars
        self.external_max_context_chars = external_max_context_chars

    async def collect_evidence(
        self,
        question: str,
        transcript: str = "",
        repo_targets: Sequence[RepoTarget] = (),
    ) -> CollectedEvidence:
        """
        Main entry point - gather repo and external evidence for a question.

        Args:
            question: The user's question
            transcript: Optional recent chat transcript
            repo_targets: Repositories eligible for search

        Returns:
            CollectedEvidence (always well-formed)
        """
        state = ResearchState(
            question=(question or "").strip(),
            transcript=transcript or "",
            repo_targets=list(repo_targets),
            max_rounds=self.max_rounds,
        )
        state.log(f"Controller: Starting research for '{state.question[:50]}'")

        await self._run_first_round(state)

        for round_number in range(2, self.max_rounds + 1):
            if self.planner is None:
                break
            state.round = round_number
            if not await self._run_followup_round(state):
                break

        state.log(f"Controller: Finished after {state.round} round(s)")
        return self._build_evidence(state)

    # ── Rounds ───────────────────────────────────────────────────────────

    def _can_search_repos(self, state: ResearchState) -> bool:
        return self.repo_tool is not None and bool(state.repo_targets)

    async def _classify(self, state: ResearchState) -> None:
        if self.classifier is not None:
            try:
                await self.classifier.run(state)
                return
            except Exception as e:
                logger.warning(f"Classifier failed, using heuristics: {e}")
                state.add_error(f"Classifier failed: {e}")
        state.analysis = analyze_question(state.question, state.repo_targets)

    async def _run_first_round(self, state: ResearchState) -> None:
        state.round = 1
        await self._classify(state)

        state.external_enabled = (
            self.external_tool is not None
            and self.external_tool.should_query(state.question, state.transcript)
        )

        repo_query = ""
        if self._can_search_repos(state) and state.analysis.needs_repo_lookup:
            repo_query = (state.analysis.search_query or "").strip()
        external_query = state.question if state.external_enabled else ""

        if repo_query:
            state.seen_repo_queries.add(repo_query)
        if external_query:
            state.seen_external_queries.add(external_query)
            state.initial_external_query = external_query

        logger.info(
            f"Research round 1: repo={'yes' if repo_query else 'no'} "
            f"external={'yes' if external_query else 'no'}"
        )

        repo_result, external_result = await asyncio.gather(
            self._search_repos(state, repo_query),
            self._ask_external(state, external_query),
        )
        self._record_repo(state, repo_query, repo_result)
        self._record_external(state, external_query, external_result)

    async def _run_followup_round(self, state: ResearchState) -> bool:
        """Run one planned round. Returns False when research should stop."""
        try:
            await self.planner.run(state)
        except Exception as e:
            logger.warning(f"Planner failed, stopping research: {e}")
            state.add_error(f"Planner failed: {e}")
            return False
        plan = state.plan

        if plan.ask_user:
            for q in plan.ask_user:
                value = q.strip()
                if not value or value in state.follow_up_questions:
                    continue
                state.follow_up_questions.append(value)
                if len(state.follow_up_questions) >= MAX_ASK_USER:
                    break
            logger.info(f"Research round {state.round}: asking user {len(state.follow_up_questions)} question(s)")
            return False

        repo_queries: List[str] = []
        if self._can_search_repos(state):
            repo_queries = self._unseen(plan.repo_queries, state.seen_repo_queries)
        external_queries: List[str] = []
        if state.external_enabled:
            external_queries = self._unseen(plan.external_queries, state.seen_external_queries)

        if not repo_queries and not external_queries:
            logger.info(f"Research round {state.round}: no new queries")
            return False

        state.seen_repo_queries.update(repo_queries)
        state.seen_external_queries.update(external_queries)
        logger.info(
            f"Research round {state.round}: {len(repo_queries)} repo, "
            f"{len(external_queries)} external queries"
        )

        results = await asyncio.gather(
            *[self._search_repos(state, q) for q in repo_queries],
            *[self._ask_external(state, q) for q in external_queries],
        )
        for q, result in zip(repo_queries, results[:len(repo_queries)]):
            self._record_repo(state, q, result)
        for q, result in zip(external_queries, results[len(repo_queries):]):
            self._record_external(state, q, result)

        return not plan.done

    @staticmethod
    def _unseen(queries: Sequence[str], seen: set) -> List[str]:
        out = []
        for q in queries:
            value = q.strip()
            if value and value not in seen and value not in out:
                out.append(value)
        return out[:MAX_PLANNED_QUERIES]

    # ── Lookups ──────────────────────────────────────────────────────────

    async def _search_repos(self, state: ResearchState, query: str) -> Optional[ToolResult]:
        if not query:
            return None
        try:
            return await self.repo_tool.execute(state, query=query)
        except Exception as e:
            logger.warning(f"Repo search for '{query[:50]}' failed: {e}")
            return ToolResult(success=False, error=str(e))

    async def _ask_external(self, state: ResearchState, query: str) -> Optional[ToolResult]:
        if not query:
            return None
        try:
            return await self.external_tool.execute(state, query=query)
        except Exception as e:
            logger.warning(f"External lookup for '{query[:50]}' failed: {e}")
            failure = EvidenceFailure(FailureKind.UNKNOWN, str(e))
            return ToolResult(success=False, data=failure, error=str(e))

    def _record_repo(self, state: ResearchState, query: str, result: Optional[ToolResult]) -> None:
        if result is None:
            return
        if not result.success:
            logger.warning(f"No repo evidence for '{query[:50]}': {result.error}")
            return
        state.add_repo_evidence(query, result.data.context_text, result.data.sources)

    def _record_external(self, state: ResearchState, query: str, result: Optional[ToolResult]) -> None:
        if result is None:
            return
        if result.success:
            state.add_external_evidence(query, result.data.context_text, result.data.sources)
            return

        failure = result.data
        kind = failure.kind if isinstance(failure, EvidenceFailure) else FailureKind.UNKNOWN
        message = (result.error or "").strip() or kind.value
        state.external_failures.append(f"{kind.value}: {message}")
        if kind != FailureKind.EMPTY:
            state.external_enabled = False
            logger.warning(f"Disabling external lookups for this question ({kind.value})")

    # ── Output ───────────────────────────────────────────────────────────

    def _build_evidence(self, state: ResearchState) -> CollectedEvidence:
        repo_context = join_blocks(state.repo_blocks, self.repo_max_context_chars)
        external_context = join_blocks(state.external_blocks, self.external_max_context_chars)

        sources = merge_sources(
            [
                [s for b in state.repo_blocks for s in b.sources],
                [s for b in state.external_blocks for s in b.sources],
            ],
            self.max_sources,
        )

        warnings = []
        if state.initial_external_query and not external_context:
            reason = next((f for f in state.external_failures if f.strip()), DEFAULT_EXTERNAL_FAILURE)
            warnings.append(
                f"External evidence is unavailable for this question ({reason}). "
                "Answering without external context."
            )

        return CollectedEvidence(
            repo_context=repo_context,
            external_context=external_context,
            sources=sources,
            follow_up_questions=state.follow_up_questions,
            warnings=warnings,
        )
