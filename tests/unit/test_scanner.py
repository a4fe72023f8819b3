"""Tests for repo_research.services.scanner — file listing and index cache."""

from types import SimpleNamespace
from unittest.mock import patch

from repo_research.services.scanner import (
    Scanner,
    is_probably_binary,
    list_git_files,
    should_skip_path,
    walk_files,
)

# ── should_skip_path ─────────────────────────────────────────────────────────


class TestShouldSkipPath:
    def test_node_modules_segment(self):
        assert should_skip_path("web/node_modules/lodash/index.js") is True

    def test_git_segment(self):
        assert should_skip_path(".git/config") is True

    def test_build_output(self):
        assert should_skip_path("dist/bundle.js") is True

    def test_image_extension(self):
        assert should_skip_path("docs/logo.PNG") is True

    def test_archive_extension(self):
        assert should_skip_path("release.tar") is True

    def test_normal_source(self):
        assert should_skip_path("src/server/a.go") is False

    def test_file_named_like_skip_dir(self):
        assert should_skip_path("tools/build") is False

    def test_windows_separators(self):
        assert should_skip_path("vendor\\pkg\\x.go") is True


# ── is_probably_binary ───────────────────────────────────────────────────────


class TestIsProbablyBinary:
    def test_empty(self):
        assert is_probably_binary(b"") is False

    def test_plain_text(self):
        assert is_probably_binary(b"func main() {\n\treturn\n}\n") is False

    def test_nul_byte(self):
        assert is_probably_binary(b"abc\x00def") is True

    def test_many_control_chars(self):
        data = b"a" * 90 + b"\x01" * 10
        assert is_probably_binary(data) is True

    def test_few_control_chars(self):
        data = b"a" * 99 + b"\x01"
        assert is_probably_binary(data) is False

    def test_only_first_8000_bytes_sampled(self):
        data = b"a" * 8000 + b"\x00"
        assert is_probably_binary(data) is False


# ── list_git_files ───────────────────────────────────────────────────────────


class TestListGitFiles:
    def test_no_git_dir(self, tmp_path):
        assert list_git_files(str(tmp_path)) is None

    def test_parses_nul_separated_output(self, tmp_path):
        (tmp_path / ".git").mkdir()
        fake = SimpleNamespace(returncode=0, stdout=b"a.go\0cmd/main.go\0", stderr=b"")
        with patch("repo_research.services.scanner.subprocess.run", return_value=fake):
            assert list_git_files(str(tmp_path)) == ["a.go", "cmd/main.go"]

    def test_git_failure_returns_none(self, tmp_path):
        (tmp_path / ".git").mkdir()
        fake = SimpleNamespace(returncode=128, stdout=b"", stderr=b"fatal: not a git repository")
        with patch("repo_research.services.scanner.subprocess.run", return_value=fake):
            assert list_git_files(str(tmp_path)) is None

    def test_git_missing_returns_none(self, tmp_path):
        (tmp_path / ".git").mkdir()
        with patch(
            "repo_research.services.scanner.subprocess.run",
            side_effect=FileNotFoundError("git"),
        ):
            assert list_git_files(str(tmp_path)) is None


# ── walk_files ───────────────────────────────────────────────────────────────


class TestWalkFiles:
    def test_skips_excluded(self, go_repo):
        files = walk_files(str(go_repo), 100)
        assert "a.go" in files
        assert "cmd/main.go" in files
        assert not any(f.startswith("node_modules") for f in files)
        assert "logo.png" not in files

    def test_respects_max_files(self, go_repo):
        assert len(walk_files(str(go_repo), 2)) == 2

    def test_deterministic_order(self, go_repo):
        assert walk_files(str(go_repo), 100) == walk_files(str(go_repo), 100)

    def test_missing_directory(self, tmp_path):
        assert walk_files(str(tmp_path / "nope"), 10) == []


# ── Scanner cache ────────────────────────────────────────────────────────────


class TestScanner:
    def test_build_index(self, go_repo):
        index = Scanner().build_index(str(go_repo), 100)
        assert "a.go" in index.files
        assert index.max_files == 100

    def test_idempotent(self, go_repo):
        scanner = Scanner()
        first = scanner.build_index(str(go_repo), 100)
        second = scanner.build_index(str(go_repo), 100)
        assert first.files == second.files
        assert first.built_at == second.built_at

    def test_smaller_bound_reuses_cache(self, go_repo):
        scanner = Scanner()
        full = scanner.build_index(str(go_repo), 100)
        with patch("repo_research.services.scanner.walk_files") as walk:
            small = scanner.build_index(str(go_repo), 2)
            walk.assert_not_called()
        assert small.files == full.files[:2]
        assert scanner.cached(str(go_repo)).max_files == 100

    def test_larger_bound_rebuilds(self, go_repo):
        scanner = Scanner()
        scanner.build_index(str(go_repo), 1)
        bigger = scanner.build_index(str(go_repo), 100)
        assert len(bigger.files) > 1
        assert scanner.cached(str(go_repo)).max_files == 100

    def test_cache_is_not_invalidated(self, go_repo):
        scanner = Scanner()
        scanner.build_index(str(go_repo), 100)
        (go_repo / "new.go").write_text("package server\n")
        assert "new.go" not in scanner.build_index(str(go_repo), 100).files

    def test_separate_scanners_do_not_share(self, go_repo):
        a = Scanner()
        a.build_index(str(go_repo), 100)
        assert Scanner().cached(str(go_repo)) is None

    def test_clear(self, go_repo):
        scanner = Scanner()
        scanner.build_index(str(go_repo), 100)
        scanner.clear()
        assert scanner.cached(str(go_repo)) is None

    def test_git_listing_filtered(self, tmp_path):
        (tmp_path / ".git").mkdir()
        with patch(
            "repo_research.services.scanner.list_git_files",
            return_value=["a.go", "vendor/x.go", "img/a.png", "b.go"],
        ):
            index = Scanner().build_index(str(tmp_path), 10)
        assert index.files == ["a.go", "b.go"]
