"""
Query Tokenizer and Line Scorer.

Turns a free-text question into a token list, scores file lines by literal
token hits, and renders a line-numbered excerpt around the best line.

Matching is plain case-insensitive substring containment; there is no
stemming or weighting.
"""

import re
from typing import List, Optional, Tuple


MAX_QUERY_TOKENS = 48
MIN_TOKEN_LENGTH = 3

STOP_WORDS = {
    "the", "a", "an", "and", "or", "to", "of", "in", "for", "on", "with",
    "is", "are", "be", "as", "at", "by", "from", "it", "this", "that",
    "these", "those", "we", "i", "you", "they", "he", "she", "them",
    "our", "your", "their", "not",
}

_QUOTED_RE = re.compile(r'"([^"]+)"|\'([^\']+)\'')
# Anything that is not a letter, digit, underscore or one of ":./-" separates words
_SEPARATOR_RE = re.compile(r"[^\w:./\-]+")
_EDGE_PUNCTUATION = ".:/-"
_LINE_SPLIT_RE = re.compile(r"\r?\n")


def tokenize_query(query: str) -> List[str]:
    """
    Derive search tokens from a raw query.

    Quoted phrases (3+ chars) come first and are kept verbatim. The rest of
    the text is split into words; stop-words and words shorter than 3 chars
    are dropped. Tokens are de-duplicated case-insensitively in discovery
    order and capped at 48.

    Example:
        >>> tokenize_query('where is "ParseConfig" called in the server')
        ['ParseConfig', 'where', 'called', 'server']
    """
    trimmed = (query or "").strip()
    if not trimmed:
        return []

    quoted: List[str] = []
    for match in _QUOTED_RE.finditer(trimmed):
        phrase = (match.group(1) or match.group(2) or "").strip()
        if len(phrase) >= MIN_TOKEN_LENGTH:
            quoted.append(phrase)

    remainder = _QUOTED_RE.sub(" ", trimmed)
    words = [w.strip(_EDGE_PUNCTUATION) for w in _SEPARATOR_RE.split(remainder)]

    tokens: List[str] = []
    seen = set()
    for token in quoted + words:
        if len(token) < MIN_TOKEN_LENGTH:
            continue
        key = token.lower()
        if key in STOP_WORDS or key in seen:
            continue
        seen.add(key)
        tokens.append(token)
        if len(tokens) >= MAX_QUERY_TOKENS:
            break

    return tokens


def split_lines(text: str) -> List[str]:
    """Split text on LF or CRLF line endings."""
    return _LINE_SPLIT_RE.split(text)


def count_line_hits(line: str, tokens_lower: List[str]) -> int:
    """Count how many distinct tokens occur in a line."""
    lower = line.lower()
    return sum(1 for token in tokens_lower if token in lower)


def score_file(lines: List[str], tokens: List[str]) -> Tuple[int, Optional[int]]:
    """
    Score a file against query tokens.

    Returns:
        (score, best_line) where score is the sum of per-line hit counts and
        best_line is the 1-based line with the highest count (first one wins
        ties), or None when nothing matched.
    """
    tokens_lower = [t.lower() for t in tokens]
    score = 0
    best_line: Optional[int] = None
    best_hits = 0

    for i, line in enumerate(lines):
        hits = count_line_hits(line, tokens_lower)
        if hits == 0:
            continue
        score += hits
        if hits > best_hits:
            best_hits = hits
            best_line = i + 1

    return score, best_line


def render_excerpt(lines: List[str], best_line: int, context_lines: int) -> str:
    """Render ±context_lines around best_line, each prefixed with its line number."""
    context_lines = max(0, context_lines)
    start = max(0, best_line - 1 - context_lines)
    end = min(len(lines) - 1, best_line - 1 + context_lines)

    rendered = []
    for i in range(start, end + 1):
        rendered.append(f"{i + 1:>5} | {lines[i]}")
    return "\n".join(rendered)


def build_context_text(blocks: List[str], max_chars: int, separator: str = "\n") -> str:
    """
    Concatenate context blocks without cutting any of them.

    Stops before the first block that would push the text (separator
    included) over max_chars.
    """
    text = ""
    for block in blocks:
        addition = f"{separator}{block}" if text else block
        if len(text) + len(addition) > max_chars:
            break
        text += addition
    return text.strip()
