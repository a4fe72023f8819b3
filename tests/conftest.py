"""Shared test fixtures for the repo research test suite."""

from unittest.mock import AsyncMock

import pytest

from repo_research.core.config import get_settings
from repo_research.models.schemas import RepoTarget


A_GO = """package server

import "errors"

// Config holds server settings.
type Config struct {
\tPath string
}

func ParseConfig() error {
\treturn errors.New("not implemented")
}
"""


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are lru_cached; make every test read the environment fresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def go_repo(tmp_path):
    """A small Go repository; a.go line 10 declares ParseConfig."""
    repo = tmp_path / "server"
    repo.mkdir()
    (repo / "a.go").write_text(A_GO)
    (repo / "b.go").write_text("package server\n\nfunc Serve() {}\n")
    (repo / "README.md").write_text("# server\nRun it.\n")

    (repo / "cmd").mkdir()
    (repo / "cmd" / "main.go").write_text(
        "package main\n\nfunc main() {\n\tserver.Serve()\n}\n"
    )

    # Excluded content
    nm = repo / "node_modules"
    nm.mkdir()
    (nm / "dep.go").write_text("func ParseConfig() {}\n")
    (repo / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\nParseConfig")
    (repo / "blob.dat").write_bytes(b"ParseConfig\x00\x01\x02\x03")

    return repo


@pytest.fixture
def make_repo(tmp_path):
    """Factory building a repo directory from a {relative path: text} mapping."""

    def _make(name, files):
        repo = tmp_path / name
        repo.mkdir()
        for rel, content in files.items():
            path = repo / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return repo

    return _make


@pytest.fixture
def go_target(go_repo):
    return RepoTarget(path=str(go_repo), name="server")


@pytest.fixture
def fake_llm():
    """LLM client double with an AsyncMock generate()."""

    class FakeLLM:
        def __init__(self):
            self.generate = AsyncMock(return_value="{}")

    return FakeLLM()
