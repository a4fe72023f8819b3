"""Tests for repo_research.agents.classifier — round-one question routing."""

import pytest

from repo_research.agents.base import ResearchState
from repo_research.agents.classifier import (
    ClassifierAgent,
    analyze_question,
    is_code_related,
    needs_repo_lookup,
)
from repo_research.models.schemas import RepoTarget


REPOS = [RepoTarget(path="/tmp/tidb", name="tidb", display_name="TiDB Server")]


# ── heuristics ───────────────────────────────────────────────────────────────


class TestHeuristics:
    def test_code_related_keywords(self):
        assert is_code_related("Why does this panic with a nil pointer?") is True
        assert is_code_related("what does config.yaml control") is True

    def test_code_related_call_syntax(self):
        assert is_code_related("When is ParseConfig() invoked?") is True

    def test_not_code_related(self):
        assert is_code_related("What time is the standup tomorrow?") is False

    def test_lookup_words(self):
        assert needs_repo_lookup("where is ParseConfig called") is True
        assert needs_repo_lookup("how does the scheduler work") is True

    def test_failure_words(self):
        assert needs_repo_lookup("startup fails after upgrade") is True

    def test_repo_mention_with_bug(self):
        assert needs_repo_lookup("tidb regression on upgrade", REPOS) is True

    def test_in_repo_name(self):
        assert needs_repo_lookup("how is gc tuned in tidb?", REPOS) is True

    def test_general_advice(self):
        assert needs_repo_lookup("what is a good naming convention for tests", REPOS) is False

    def test_analysis_without_repos(self):
        analysis = analyze_question("where is ParseConfig() called", [])
        assert analysis.needs_repo_lookup is False
        assert analysis.is_code_related is True

    def test_analysis_query_is_question(self):
        analysis = analyze_question("  where is ParseConfig called  ", REPOS)
        assert analysis.needs_repo_lookup is True
        assert analysis.search_query == "where is ParseConfig called"


# ── ClassifierAgent ──────────────────────────────────────────────────────────


class TestClassifierAgent:
    @pytest.mark.asyncio
    async def test_llm_verdict_used(self, fake_llm):
        fake_llm.generate.return_value = (
            'Sure: {"is_code_related": true, "needs_repo_lookup": true, '
            '"search_query": "gc_life_time"}'
        )
        agent = ClassifierAgent(fake_llm)
        analysis = await agent.classify("how long is gc kept?", "", REPOS)
        assert analysis.needs_repo_lookup is True
        assert analysis.search_query == "gc_life_time"

    @pytest.mark.asyncio
    async def test_heuristic_overrides_llm_no(self, fake_llm):
        fake_llm.generate.return_value = (
            '{"is_code_related": false, "needs_repo_lookup": false, "search_query": ""}'
        )
        agent = ClassifierAgent(fake_llm)
        analysis = await agent.classify("where is ParseConfig called", "", REPOS)
        assert analysis.needs_repo_lookup is True
        assert analysis.search_query == "where is ParseConfig called"

    @pytest.mark.asyncio
    async def test_no_repos_never_looks_up(self, fake_llm):
        fake_llm.generate.return_value = '{"needs_repo_lookup": true}'
        agent = ClassifierAgent(fake_llm)
        analysis = await agent.classify("where is ParseConfig called", "", [])
        assert analysis.needs_repo_lookup is False

    @pytest.mark.asyncio
    async def test_llm_error_falls_back(self, fake_llm):
        fake_llm.generate.side_effect = RuntimeError("rate limited")
        agent = ClassifierAgent(fake_llm)
        analysis = await agent.classify("where is ParseConfig called", "", REPOS)
        assert analysis == analyze_question("where is ParseConfig called", REPOS)

    @pytest.mark.asyncio
    async def test_unparseable_reply_falls_back(self, fake_llm):
        fake_llm.generate.return_value = "I think you should search the repo."
        agent = ClassifierAgent(fake_llm)
        analysis = await agent.classify("what is a good naming convention", "", REPOS)
        assert analysis.needs_repo_lookup is False

    @pytest.mark.asyncio
    async def test_run_updates_state(self, fake_llm):
        agent = ClassifierAgent(fake_llm)
        state = ResearchState(question="where is ParseConfig called", repo_targets=REPOS)
        state = await agent.run(state)
        assert state.analysis.needs_repo_lookup is True
        assert state.execution_log
        prompt = fake_llm.generate.call_args[0][0]
        assert "TiDB Server" in prompt
