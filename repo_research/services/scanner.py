"""
Repository Scanner - Enumerates searchable files for one repository.

Provides:
- git ls-files listing when the repo has a .git directory
- a bounded directory walk as fallback
- path/extension exclusion and binary detection
- a per-instance index cache keyed by repository path

The cache has no TTL: an index is reused until a larger max_files bound is
requested or the owning process exits.
"""

import logging
import os
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)

# Path segments that are never scanned
SKIP_DIRS = {
    ".git", ".hg", ".svn",                         # version control
    "node_modules", "vendor", "bower_components",  # dependencies
    "target", "dist", "build", "__pycache__",      # build output
}

# Binary media extensions
SKIP_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp",
    ".pdf", ".zip", ".gz", ".tar", ".jar", ".class",
    ".so", ".dll", ".exe", ".mp3", ".mp4",
}

BINARY_SAMPLE_BYTES = 8000
BINARY_CONTROL_RATIO = 0.05
GIT_LIST_TIMEOUT_SECONDS = 30


@dataclass
class RepoIndex:
    """Cached list of eligible files for a repository."""
    files: List[str]
    built_at: float
    max_files: int


def should_skip_path(rel_path: str) -> bool:
    """Check if a repo-relative path is excluded from scanning."""
    normalized = rel_path.replace("\\", "/").lower()
    parts = [p for p in normalized.split("/") if p]
    if any(part in SKIP_DIRS for part in parts[:-1]):
        return True
    return os.path.splitext(normalized)[1] in SKIP_EXTENSIONS


def is_probably_binary(data: bytes) -> bool:
    """
    Guess whether file content is binary.

    Looks at the first 8000 bytes: any NUL byte means binary, otherwise
    more than 5% control characters (outside common whitespace) does.
    """
    if not data:
        return False
    sample = data[:BINARY_SAMPLE_BYTES]
    if b"\x00" in sample:
        return True
    suspicious = sum(1 for b in sample if b < 7 or 14 < b < 32)
    return suspicious / len(sample) > BINARY_CONTROL_RATIO


def list_git_files(repo_path: str) -> Optional[List[str]]:
    """
    List tracked files with `git ls-files`.

    Returns None when the repo has no .git directory or git fails, so the
    caller can fall back to walking the tree.
    """
    if not os.path.exists(os.path.join(repo_path, ".git")):
        return None

    cmd = ["git", "-C", repo_path, "ls-files", "-z"]
    try:
        process = subprocess.run(
            cmd,
            capture_output=True,
            timeout=GIT_LIST_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"git ls-files unavailable for {repo_path}: {e}")
        return None

    if process.returncode != 0:
        logger.debug(f"git ls-files failed for {repo_path}: {process.stderr[:200]!r}")
        return None

    output = process.stdout.decode("utf-8", errors="replace")
    return [p.strip() for p in output.split("\0") if p.strip()]


def walk_files(repo_path: str, max_files: int) -> List[str]:
    """
    Walk the tree depth-first, collecting at most max_files relative paths.

    Unreadable directories are skipped. Entries are visited in name order so
    repeated walks of an unchanged tree produce the same list.
    """
    out: List[str] = []
    stack = [repo_path]

    while stack and len(out) < max_files:
        dir_path = stack.pop()
        try:
            with os.scandir(dir_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {dir_path}: {e}")
            continue

        subdirs = []
        for entry in entries:
            if len(out) >= max_files:
                break
            rel = os.path.relpath(entry.path, repo_path)
            if should_skip_path(rel):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name.lower() not in SKIP_DIRS:
                        subdirs.append(entry.path)
                elif entry.is_file():
                    out.append(rel.replace(os.sep, "/"))
            except OSError:
                continue

        # Reversed so the stack pops subdirectories in name order
        stack.extend(reversed(subdirs))

    return out


class Scanner:
    """
    Builds and caches RepoIndex entries.

    One Scanner is owned by each process that searches (the caller's process
    for in-process searches, and each pool worker for its own tasks).
    """

    def __init__(self):
        self._cache: Dict[str, RepoIndex] = {}
        self._lock = threading.Lock()

    def build_index(self, repo_path: str, max_files: int) -> RepoIndex:
        """
        Return the file index for a repo, building it if needed.

        A cached index is reused while max_files <= its bound; a larger bound
        triggers a rebuild.
        """
        max_files = max(0, int(max_files))
        with self._lock:
            cached = self._cache.get(repo_path)
        if cached is not None and cached.max_files >= max_files:
            return RepoIndex(
                files=cached.files[:max_files],
                built_at=cached.built_at,
                max_files=cached.max_files,
            )

        git_files = list_git_files(repo_path)
        if git_files is None:
            files = walk_files(repo_path, max_files)
        else:
            files = git_files
        files = [f for f in files if not should_skip_path(f)][:max_files]

        index = RepoIndex(files=files, built_at=time.time(), max_files=max_files)
        with self._lock:
            current = self._cache.get(repo_path)
            if current is None or max_files >= current.max_files:
                self._cache[repo_path] = index

        logger.debug(f"Indexed {len(files)} files in {repo_path} (max_files={max_files})")
        return index

    def cached(self, repo_path: str) -> Optional[RepoIndex]:
        """Return the cached index for a repo without building one."""
        with self._lock:
            return self._cache.get(repo_path)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
