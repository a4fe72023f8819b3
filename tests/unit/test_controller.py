"""Tests for repo_research.agents.controller and evidence assembly."""

import json

import pytest

from repo_research.agents.base import EvidenceBlock
from repo_research.agents.classifier import ClassifierAgent
from repo_research.agents.controller import ResearchController
from repo_research.agents.evidence import join_blocks, merge_sources
from repo_research.agents.planner import PlannerAgent
from repo_research.agents.tools import ExternalEvidenceTool, RepoSearchTool
from repo_research.models.schemas import RepoTarget
from repo_research.services.external_evidence import (
    EvidenceFailure,
    EvidenceProvider,
    EvidenceSuccess,
    FailureKind,
)
from repo_research.services.worker_pool import RepoSearchService, WorkerPoolClosedError


class ScriptedProvider(EvidenceProvider):
    """Provider returning queued results and recording every query."""

    name = "scripted"

    def __init__(self, *results, eligible=True):
        self.results = list(results)
        self.eligible = eligible
        self.queries = []

    def should_query(self, question, transcript=""):
        return self.eligible

    async def query(self, question, transcript=""):
        self.queries.append(question)
        if self.results:
            result = self.results.pop(0)
        else:
            result = EvidenceFailure(FailureKind.EMPTY, "empty answer")
        if isinstance(result, Exception):
            raise result
        return result


class ClosedService:
    async def search(self, request):
        raise WorkerPoolClosedError("worker pool is closed")


class CountingService(RepoSearchService):
    """In-process search service that records every request."""

    def __init__(self):
        super().__init__(use_pool=False)
        self.requests = []

    async def search(self, request, **kwargs):
        self.requests.append(request)
        return await super().search(request, **kwargs)


def _repo_tool():
    return RepoSearchTool(RepoSearchService(use_pool=False), max_snippets=5, context_lines=1)


def _docs(text, *sources):
    return EvidenceSuccess(context_text=text, sources=list(sources), answer=text)


def _planner(fake_llm, *plans):
    fake_llm.generate.side_effect = [json.dumps(p) for p in plans]
    return PlannerAgent(fake_llm)


# ── evidence assembly ────────────────────────────────────────────────────────


class TestJoinBlocks:
    def test_empty(self):
        assert join_blocks([], 100) is None
        assert join_blocks([EvidenceBlock("q", "   ")], 100) is None

    def test_joined_in_order(self):
        text = join_blocks([EvidenceBlock("a", "one"), EvidenceBlock("b", "two")], 1000)
        assert text == "Query: a\none\n\n---\n\nQuery: b\ntwo"

    def test_whole_blocks_only(self):
        blocks = [EvidenceBlock("a", "one"), EvidenceBlock("b", "two")]
        assert join_blocks(blocks, 15) == "Query: a\none"

    def test_oversized_first_block_clipped(self):
        text = join_blocks([EvidenceBlock("a", "x" * 500)], 100)
        assert len(text) <= 100
        assert text.endswith("…(truncated)")


class TestMergeSources:
    def test_dedupe_in_order(self):
        assert merge_sources([["a", "b"], ["b", " ", "c"]], 10) == ["a", "b", "c"]

    def test_cap(self):
        assert merge_sources([["a", "b"], ["c"]], 2) == ["a", "b"]

    def test_cap_at_least_one(self):
        assert merge_sources([["a", "b"]], 0) == ["a"]


# ── round one ────────────────────────────────────────────────────────────────


class TestFirstRound:
    @pytest.mark.asyncio
    async def test_parse_config_question(self, go_repo, go_target):
        controller = ResearchController(repo_tool=_repo_tool())
        evidence = await controller.collect_evidence(
            'where is "ParseConfig" called', repo_targets=[go_target],
        )
        assert evidence.repo_context.startswith('Query: where is "ParseConfig" called\nRepo: server')
        assert "   10 | func ParseConfig() error {" in evidence.repo_context
        assert evidence.sources[0].endswith("a.go:10")
        assert evidence.external_context is None
        assert evidence.warnings == []

    @pytest.mark.asyncio
    async def test_general_question_skips_repos(self, go_target):
        service = RepoSearchService(use_pool=False)
        controller = ResearchController(repo_tool=RepoSearchTool(service))
        evidence = await controller.collect_evidence(
            "what is a good naming convention", repo_targets=[go_target],
        )
        assert evidence.repo_context is None
        assert evidence.sources == []

    @pytest.mark.asyncio
    async def test_no_repos(self):
        controller = ResearchController(repo_tool=_repo_tool())
        evidence = await controller.collect_evidence("where is ParseConfig called")
        assert evidence.repo_context is None

    @pytest.mark.asyncio
    async def test_repo_and_external_merged(self, go_target):
        provider = ScriptedProvider(_docs("Docs say X", "https://docs.example.com/x"))
        controller = ResearchController(
            repo_tool=_repo_tool(), external_tool=ExternalEvidenceTool(provider),
        )
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert provider.queries == ["where is ParseConfig called"]
        assert evidence.external_context == "Query: where is ParseConfig called\nDocs say X"
        assert evidence.sources[-1] == "https://docs.example.com/x"
        assert evidence.sources[0].endswith("a.go:10")

    @pytest.mark.asyncio
    async def test_ineligible_external_not_queried(self):
        provider = ScriptedProvider(eligible=False)
        controller = ResearchController(external_tool=ExternalEvidenceTool(provider))
        evidence = await controller.collect_evidence("how do I tune gc?")
        assert provider.queries == []
        assert evidence.warnings == []

    @pytest.mark.asyncio
    async def test_external_timeout_warns_and_keeps_repo(self, go_target):
        provider = ScriptedProvider(EvidenceFailure(FailureKind.TIMEOUT, "timed out"))
        controller = ResearchController(
            repo_tool=_repo_tool(), external_tool=ExternalEvidenceTool(provider),
        )
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert evidence.repo_context is not None
        assert evidence.external_context is None
        assert evidence.warnings == [
            "External evidence is unavailable for this question (timeout: timed out). "
            "Answering without external context."
        ]

    @pytest.mark.asyncio
    async def test_provider_exception_is_unknown_failure(self):
        provider = ScriptedProvider(RuntimeError("boom"))
        controller = ResearchController(external_tool=ExternalEvidenceTool(provider))
        evidence = await controller.collect_evidence("how do I tune gc?")
        assert "unknown: External evidence failed: boom" in evidence.warnings[0]

    @pytest.mark.asyncio
    async def test_closed_pool_means_no_repo_evidence(self, go_target):
        controller = ResearchController(repo_tool=RepoSearchTool(ClosedService()))
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert evidence.repo_context is None
        assert evidence.sources == []

    @pytest.mark.asyncio
    async def test_classifier_failure_uses_heuristics(self, fake_llm, go_target):
        class BrokenClassifier(ClassifierAgent):
            async def run(self, state):
                raise RuntimeError("broken")

        controller = ResearchController(repo_tool=_repo_tool(), classifier=BrokenClassifier(fake_llm))
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert evidence.repo_context is not None


# ── follow-up rounds ─────────────────────────────────────────────────────────


class TestFollowupRounds:
    @pytest.mark.asyncio
    async def test_planner_queries_run(self, fake_llm, go_target):
        planner = _planner(
            fake_llm,
            {"done": False, "repo_queries": ["Serve"]},
            {"done": True},
        )
        controller = ResearchController(repo_tool=_repo_tool(), planner=planner)
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert "Query: Serve" in evidence.repo_context
        assert any("b.go" in s for s in evidence.sources)

    @pytest.mark.asyncio
    async def test_done_stops_after_round(self, fake_llm, go_target):
        planner = _planner(fake_llm, {"done": True, "repo_queries": ["Serve"]})
        controller = ResearchController(repo_tool=_repo_tool(), planner=planner, max_rounds=3)
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert fake_llm.generate.call_count == 1
        assert "Query: Serve" in evidence.repo_context

    @pytest.mark.asyncio
    async def test_clarifying_questions_stop(self, fake_llm, go_target):
        planner = _planner(
            fake_llm,
            {
                "done": False,
                "repo_queries": ["Serve"],
                "ask_user": ["Which version?", "Which version?", "Full error?"],
            },
            {"done": False, "repo_queries": ["main"]},
        )
        service = CountingService()
        controller = ResearchController(
            repo_tool=RepoSearchTool(service, max_snippets=5, context_lines=1),
            planner=planner,
        )
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert evidence.follow_up_questions == ["Which version?", "Full error?"]
        assert "Query: Serve" not in evidence.repo_context
        assert "Query: main" not in evidence.repo_context
        assert fake_llm.generate.call_count == 1
        assert [r.query for r in service.requests] == ["where is ParseConfig called"]

    @pytest.mark.asyncio
    async def test_seen_queries_not_repeated(self, fake_llm, go_target):
        planner = _planner(fake_llm, {"done": False, "repo_queries": ["where is ParseConfig called"]})
        controller = ResearchController(repo_tool=_repo_tool(), planner=planner)
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert evidence.repo_context.count("Query: ") == 1
        assert fake_llm.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_max_rounds(self, fake_llm, go_target):
        planner = _planner(
            fake_llm,
            {"done": False, "repo_queries": ["Serve"]},
            {"done": False, "repo_queries": ["main"]},
            {"done": False, "repo_queries": ["Config"]},
        )
        controller = ResearchController(repo_tool=_repo_tool(), planner=planner, max_rounds=2)
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert fake_llm.generate.call_count == 1
        assert "Query: main" not in evidence.repo_context

    @pytest.mark.asyncio
    async def test_external_disabled_after_failure(self, fake_llm):
        provider = ScriptedProvider(EvidenceFailure(FailureKind.NETWORK, "refused"))
        planner = _planner(fake_llm, {"done": False, "external_queries": ["gc docs"]})
        controller = ResearchController(external_tool=ExternalEvidenceTool(provider), planner=planner)
        evidence = await controller.collect_evidence("how do I tune gc?")
        assert provider.queries == ["how do I tune gc?"]
        assert "network: refused" in evidence.warnings[0]

    @pytest.mark.asyncio
    async def test_empty_answer_keeps_external_enabled(self, fake_llm):
        provider = ScriptedProvider(
            EvidenceFailure(FailureKind.EMPTY, "empty answer"),
            _docs("Use gc_life_time", "https://docs.example.com/gc"),
        )
        planner = _planner(
            fake_llm,
            {"done": False, "external_queries": ["gc life time"]},
            {"done": True},
        )
        controller = ResearchController(external_tool=ExternalEvidenceTool(provider), planner=planner)
        evidence = await controller.collect_evidence("how do I tune gc?")
        assert provider.queries == ["how do I tune gc?", "gc life time"]
        assert evidence.external_context == "Query: gc life time\nUse gc_life_time"
        assert evidence.warnings == []

    @pytest.mark.asyncio
    async def test_planner_failure_keeps_round_one(self, fake_llm, go_target):
        fake_llm.generate.side_effect = RuntimeError("llm down")
        controller = ResearchController(repo_tool=_repo_tool(), planner=PlannerAgent(fake_llm))
        evidence = await controller.collect_evidence("where is ParseConfig called", repo_targets=[go_target])
        assert evidence.repo_context is not None
        assert evidence.follow_up_questions == []

    @pytest.mark.asyncio
    async def test_source_cap(self, fake_llm, make_repo):
        repo = make_repo("many", {f"f{i}.go": "func failing() {}\n" for i in range(6)})
        controller = ResearchController(repo_tool=_repo_tool(), max_sources=3)
        evidence = await controller.collect_evidence(
            "where is failing defined", repo_targets=[RepoTarget(path=str(repo))],
        )
        assert len(evidence.sources) == 3
