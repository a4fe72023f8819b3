"""
Evidence assembly - Turns accumulated blocks into final context text.
"""

from typing import Iterable, List, Optional, Sequence

from repo_research.agents.base import EvidenceBlock


BLOCK_SEPARATOR = "\n\n---\n\n"
TRUNCATION_MARKER = "\n\n…(truncated)"


def _render(block: EvidenceBlock) -> str:
    header = f"Query: {block.query}\n" if block.query else ""
    return f"{header}{block.context_text.strip()}".strip()


def join_blocks(blocks: Sequence[EvidenceBlock], max_chars: int) -> Optional[str]:
    """
    Join evidence blocks under a character budget.

    Whole blocks are kept in order until the next one would not fit; a
    block is never split. The one exception is an oversized first block:
    rather than return nothing, it is cut mid-block to the budget and
    marked as truncated. Returns None when nothing is left.
    """
    parts = [_render(b) for b in blocks if (b.context_text or "").strip()]
    if not parts:
        return None

    max_chars = max(0, max_chars)
    first = parts[0]
    if len(first) > max_chars:
        keep = max(0, max_chars - len(TRUNCATION_MARKER))
        clipped = (first[:keep] + TRUNCATION_MARKER)[:max_chars] if max_chars else ""
        return clipped.strip() or None

    out = first
    for part in parts[1:]:
        candidate = out + BLOCK_SEPARATOR + part
        if len(candidate) > max_chars:
            break
        out = candidate
    return out


def merge_sources(lists: Iterable[Iterable[str]], max_items: int) -> List[str]:
    """Flatten source lists in order, dropping blanks and duplicates."""
    limit = max(1, max_items)
    out: List[str] = []
    for items in lists:
        for item in items or []:
            value = (item or "").strip()
            if not value or value in out:
                continue
            out.append(value)
            if len(out) >= limit:
                return out
    return out
