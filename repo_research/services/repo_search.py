"""
Single-Repository Search - Literal token search over one repository.

FLOW:
1. Tokenize the query (empty token set -> empty result)
2. Get the repo's file index from the Scanner
3. Score every eligible file line by line
4. Keep the top files and render an excerpt around each best line
5. Assemble a size-bounded context text plus "path:line" sources
"""

import logging
import os
import stat
from dataclasses import dataclass, field
from typing import List, Optional

from repo_research.services.scanner import Scanner, is_probably_binary
from repo_research.services.scoring import (
    build_context_text,
    render_excerpt,
    score_file,
    split_lines,
    tokenize_query,
)


logger = logging.getLogger(__name__)


@dataclass
class FileCandidate:
    """A file that matched at least one token."""
    file_path: str
    score: int
    best_line: int


@dataclass
class Snippet:
    """A rendered excerpt around a file's best matching line."""
    file_path: str
    match_line: int
    excerpt: str
    score: int

    @property
    def source(self) -> str:
        return f"{self.file_path}:{self.match_line}"


@dataclass
class SingleRepoResult:
    """Result of searching one repository."""
    query: str
    snippets: List[Snippet] = field(default_factory=list)
    context_text: str = ""
    sources: List[str] = field(default_factory=list)


def _read_lines(abs_path: str, max_file_bytes: Optional[int] = None) -> Optional[List[str]]:
    """
    Read a file as text lines, or None if it is not searchable.

    Skips non-regular, empty, oversized, unreadable and binary files.
    """
    try:
        st = os.stat(abs_path)
    except OSError:
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    if max_file_bytes is not None and (st.st_size <= 0 or st.st_size > max_file_bytes):
        return None

    try:
        with open(abs_path, "rb") as f:
            data = f.read()
    except OSError as e:
        logger.debug(f"Skipping unreadable file {abs_path}: {e}")
        return None

    if is_probably_binary(data):
        return None
    return split_lines(data.decode("utf-8", errors="replace"))


def _score_candidate(
    repo_path: str,
    rel_path: str,
    tokens: List[str],
    max_file_bytes: int,
) -> Optional[FileCandidate]:
    lines = _read_lines(os.path.join(repo_path, rel_path), max_file_bytes)
    if lines is None:
        return None
    score, best_line = score_file(lines, tokens)
    if best_line is None or score <= 0:
        return None
    return FileCandidate(file_path=rel_path, score=score, best_line=best_line)


def rank_candidates(
    repo_path: str,
    files: List[str],
    tokens: List[str],
    max_file_bytes: int,
) -> List[FileCandidate]:
    """Score files sequentially and sort by score (stable for ties)."""
    candidates = []
    for rel_path in files:
        candidate = _score_candidate(repo_path, rel_path, tokens, max_file_bytes)
        if candidate is not None:
            candidates.append(candidate)
    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates


def search_repo(
    repo_path: str,
    query: str,
    max_files: int,
    max_file_bytes: int,
    max_snippets: int,
    context_lines: int,
    max_context_chars: int,
    scanner: Optional[Scanner] = None,
) -> SingleRepoResult:
    """
    Search one repository for the lines that best match a query.

    Args:
        repo_path: Repository root directory.
        query: Free-text query.
        max_files: Upper bound on indexed files.
        max_file_bytes: Files larger than this are skipped.
        max_snippets: Maximum number of files to excerpt.
        context_lines: Lines of context on each side of the best line.
        max_context_chars: Budget for the assembled context text.
        scanner: Scanner owning the index cache (a fresh one if omitted).

    Returns:
        SingleRepoResult with snippets ordered by score.
    """
    query = (query or "").strip()
    tokens = tokenize_query(query)
    if not query or not tokens:
        return SingleRepoResult(query=query)

    scanner = scanner or Scanner()
    index = scanner.build_index(repo_path, max_files)

    candidates = rank_candidates(repo_path, index.files, tokens, max_file_bytes)
    top = candidates[:max(max_snippets, 1)]

    snippets: List[Snippet] = []
    for c in top:
        lines = _read_lines(os.path.join(repo_path, c.file_path))
        if lines is None:
            continue
        snippets.append(Snippet(
            file_path=c.file_path,
            match_line=c.best_line,
            excerpt=render_excerpt(lines, c.best_line, context_lines),
            score=c.score,
        ))

    sources = [s.source for s in snippets]
    blocks = [f"File: {s.source}\n{s.excerpt}\n" for s in snippets]

    return SingleRepoResult(
        query=query,
        snippets=snippets,
        context_text=build_context_text(blocks, max_context_chars),
        sources=sources,
    )
