"""
Planner Agent - Plans follow-up research rounds.

RESPONSIBILITY:
After round one, the planner looks at everything gathered so far and decides
whether more evidence is needed, and from where. It can also give up on
searching and hand clarifying questions back to the user.

FLOW:
1. Build a prompt from question, transcript and accumulated context
2. Ask the LLM for a JSON plan
3. Validate it into a FollowupPlan (lists trimmed, deduped and capped)
4. Anything malformed or failing -> FollowupPlan(done=True)
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from repo_research.agents.base import BaseAgent, AgentRole, ResearchState
from repo_research.agents.evidence import join_blocks
from repo_research.agents.json_utils import clip, extract_json_object
from repo_research.models.schemas import FollowupPlan


logger = logging.getLogger(__name__)

PROMPT_SECTION_CHARS = 4000


# System prompt that defines the planner's behavior
PLANNER_SYSTEM_PROMPT = """You plan follow-up research steps for a repo-code assistant.
Your goal: decide whether more external docs lookups and/or repo searches are needed BEFORE answering.
Return ONLY valid JSON with keys:
- done: boolean
- repo_queries: string[] (keywords to search local repos; only if needed)
- external_queries: string[] (questions to ask the external docs service; only if needed)
- ask_user: string[] (targeted missing-info questions; 1-3 items max)

Constraints:
- Max 2 repo_queries and 2 external_queries.
- Keep each query concise (<= 120 chars).
- If you already have enough info to answer concisely, set done=true and keep arrays empty.
- If essential details are missing (e.g. version, exact error, deployment), prefer ask_user over more searches.
- Only propose repo_queries if repo lookup is possible.
- Only propose external_queries if external docs are enabled.
"""


class PlannerAgent(BaseAgent):
    """
    Proposes the next research round.

    Never raises: the safe default is "done, nothing more to do".
    """

    role = AgentRole.PLANNER

    def __init__(self, llm_client: Any):
        super().__init__(llm_client)

    async def run(self, state: ResearchState) -> ResearchState:
        """Plan the next round and store it on the state."""
        state.plan = await self.plan(
            question=state.question,
            transcript=state.transcript,
            repo_context=join_blocks(state.repo_blocks, PROMPT_SECTION_CHARS),
            external_context=join_blocks(state.external_blocks, PROMPT_SECTION_CHARS),
            remaining_rounds=max(0, state.max_rounds - state.round + 1),
            repo_available=bool(state.repo_targets),
            external_available=state.external_enabled,
        )
        state.log(
            f"Planner: done={state.plan.done} repo={len(state.plan.repo_queries)} "
            f"external={len(state.plan.external_queries)} ask={len(state.plan.ask_user)}"
        )
        return state

    async def plan(
        self,
        question: str,
        transcript: str = "",
        repo_context: Optional[str] = None,
        external_context: Optional[str] = None,
        remaining_rounds: int = 1,
        repo_available: bool = True,
        external_available: bool = True,
    ) -> FollowupPlan:
        """
        Ask the LLM for a follow-up plan.

        Queries for an unavailable source are dropped.
        """
        prompt = self._build_prompt(
            question, transcript, repo_context, external_context,
            remaining_rounds, repo_available, external_available,
        )

        try:
            response = await self._call_llm(prompt, PLANNER_SYSTEM_PROMPT)
        except Exception as e:
            logger.warning(f"Planner LLM call failed: {e}")
            return FollowupPlan()

        plan = self._parse_plan(response)
        if not repo_available:
            plan.repo_queries = []
        if not external_available:
            plan.external_queries = []
        return plan

    def _build_prompt(
        self,
        question: str,
        transcript: str,
        repo_context: Optional[str],
        external_context: Optional[str],
        remaining_rounds: int,
        repo_available: bool,
        external_available: bool,
    ) -> str:
        """Build the planning prompt."""
        return f"""
Repo lookup possible: {"yes" if repo_available else "no"}
External docs enabled: {"yes" if external_available else "no"}
Remaining research rounds after this: {max(0, remaining_rounds - 1)}

User question:
{(question or "").strip()}

Chat context (may be partial):
{clip(transcript, PROMPT_SECTION_CHARS) or "(none)"}

Repo context collected so far:
{clip(repo_context, PROMPT_SECTION_CHARS) or "(none)"}

External knowledge context collected so far:
{clip(external_context, PROMPT_SECTION_CHARS) or "(none)"}
"""

    def _parse_plan(self, response: str) -> FollowupPlan:
        """
        Parse LLM response into a follow-up plan.

        Falls back to the safe default if parsing fails.
        """
        parsed = extract_json_object(response or "")
        if parsed is None:
            logger.info("Planner reply had no JSON object, stopping research")
            return FollowupPlan()
        try:
            return FollowupPlan.model_validate(parsed)
        except ValidationError as e:
            logger.warning(f"Planner reply failed validation: {e}")
            return FollowupPlan()
