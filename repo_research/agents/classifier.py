"""
Classifier Agent - Decides whether a question needs a repository lookup.

RESPONSIBILITY:
Round one of research starts here. A keyword heuristic always runs; when an
LLM client is configured its verdict is combined with the heuristic, so an
obvious repo question is never missed because the model said no.

FLOW:
1. Heuristic analysis (code-related? repo lookup? search query = question)
2. Optional LLM classification returning JSON
3. needs_repo_lookup = llm OR heuristic (and only when repos exist)
4. Any LLM failure -> heuristic result
"""

import logging
import re
from typing import Any, Sequence

from repo_research.agents.base import BaseAgent, AgentRole, ResearchState
from repo_research.agents.json_utils import extract_json_object
from repo_research.models.schemas import QuestionAnalysis, RepoTarget


logger = logging.getLogger(__name__)


CODE_PATTERNS = [
    re.compile(r"\b(panic|stack trace|segfault|nil pointer|null pointer)\b"),
    re.compile(r"\b(error|exception|bug|issue|problem|crash|fails|failing|build|regression|fix)\b"),
    re.compile(r"\b(function|method|class|struct|interface|package|module)\b"),
    re.compile(r"\b(golang|go|rust|java|node|typescript|python)\b"),
    re.compile(r"\b(go\.mod|package\.json|makefile)\b"),
    re.compile(r"\.(go|rs|js|ts|py|java|proto|yaml|yml|toml)\b"),
]

CALL_PATTERN = re.compile(r"[A-Za-z_]\w*\(")

LOOKUP_PATTERNS = [
    re.compile(r"\b(where|which file|what file|location|implemented|implementation|how does .* work)\b"),
    re.compile(r"\b(in this repo|in the repo|in the codebase|source code)\b"),
]

FAILURE_PATTERN = re.compile(r"\b(error|panic|stack trace|fails|failing)\b")
BUG_PATTERN = re.compile(r"\b(error|panic|stack trace|fails|failing|bug|issue|problem|regression)\b")


CLASSIFIER_SYSTEM_PROMPT = """You are a classifier for a coding assistant.
Return ONLY valid JSON with keys:
- is_code_related: boolean
- needs_repo_lookup: boolean (true only if checking local repo code/docs is necessary)
- search_query: string (keywords to search in the repo if needs_repo_lookup=true)

Guidelines:
- If the question is general programming advice with no repo-specific details, needs_repo_lookup=false.
- If it asks how this specific project behaves or implements something, needs_repo_lookup=true.
- If repo lookup is impossible (no repos configured), set needs_repo_lookup=false.
"""


def _repo_names(repos: Sequence[RepoTarget]) -> list:
    names = []
    for repo in repos:
        for value in (repo.name, repo.display_name):
            value = (value or "").strip().lower()
            if value and value not in names:
                names.append(value)
    return names


def is_code_related(question: str) -> bool:
    q = question.lower()
    if any(p.search(q) for p in CODE_PATTERNS):
        return True
    return bool(CALL_PATTERN.search(question))


def needs_repo_lookup(question: str, repos: Sequence[RepoTarget] = ()) -> bool:
    q = question.lower()
    if any(p.search(q) for p in LOOKUP_PATTERNS):
        return True

    names = _repo_names(repos)
    if names:
        alternatives = "|".join(re.escape(n) for n in names)
        if re.search(rf"\b(?:in\s+(?:{alternatives})\b|(?:{alternatives})\s+repo\b)", q):
            return True
        mentions_repo = re.search(rf"\b(?:{alternatives})\b", q) is not None
        if mentions_repo and BUG_PATTERN.search(q):
            return True

    return bool(FAILURE_PATTERN.search(q))


def analyze_question(question: str, repos: Sequence[RepoTarget] = ()) -> QuestionAnalysis:
    """Keyword-only classification used on its own or as the LLM safety net."""
    question = (question or "").strip()
    return QuestionAnalysis(
        is_code_related=is_code_related(question),
        needs_repo_lookup=bool(repos) and needs_repo_lookup(question, repos),
        search_query=question,
    )


class ClassifierAgent(BaseAgent):
    """
    LLM-backed question classifier.

    The model's needs_repo_lookup is OR-ed with the heuristic.
    """

    role = AgentRole.CLASSIFIER

    def __init__(self, llm_client: Any):
        super().__init__(llm_client)

    async def run(self, state: ResearchState) -> ResearchState:
        state.analysis = await self.classify(
            state.question, state.transcript, state.repo_targets
        )
        state.log(
            f"Classifier: repo lookup={state.analysis.needs_repo_lookup} "
            f"query='{state.analysis.search_query[:50]}'"
        )
        return state

    async def classify(
        self,
        question: str,
        transcript: str = "",
        repos: Sequence[RepoTarget] = (),
    ) -> QuestionAnalysis:
        fallback = analyze_question(question, repos)
        has_repo = bool(repos)

        try:
            response = await self._call_llm(
                self._build_prompt(question, transcript, repos),
                CLASSIFIER_SYSTEM_PROMPT,
            )
        except Exception as e:
            logger.warning(f"Classifier LLM call failed, using heuristics: {e}")
            return fallback

        parsed = extract_json_object(response or "")
        if parsed is None:
            return fallback

        code_related = parsed.get("is_code_related")
        if not isinstance(code_related, bool):
            code_related = fallback.is_code_related

        lookup = parsed.get("needs_repo_lookup")
        if not isinstance(lookup, bool):
            lookup = fallback.needs_repo_lookup

        query = parsed.get("search_query")
        query = query.strip() if isinstance(query, str) and query.strip() else fallback.search_query

        return QuestionAnalysis(
            is_code_related=code_related,
            needs_repo_lookup=has_repo and (lookup or fallback.needs_repo_lookup),
            search_query=query,
        )

    def _build_prompt(self, question: str, transcript: str, repos: Sequence[RepoTarget]) -> str:
        repo_lines = "\n".join(
            f"- {r.label or r.path}" for r in repos
        ) or "(none)"
        return f"""
Repo configured: {"yes" if repos else "no"}
Available repos:
{repo_lines}

Question:
{(question or "").strip()}

Chat context (may be partial):
{(transcript or "").strip() or "(none)"}
"""
