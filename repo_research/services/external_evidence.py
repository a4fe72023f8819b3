"""
External Evidence - Docs QA lookups used as a second evidence source.

A provider answers a query with either an EvidenceSuccess (context body plus
source URLs) or an EvidenceFailure tagged with a FailureKind. Providers never
raise for transport or payload problems; the caller decides how to surface
a failure.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Union

import httpx


logger = logging.getLogger(__name__)

MAX_SANITIZED_CHARS = 2000
TRUNCATION_MARKER = "\n\n…(truncated)"

SENSITIVE_PATTERNS = [
    re.compile(r"sk-[A-Za-z0-9]{16,}"),
    re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----"),
    re.compile(r"\bAPP_SECRET\b"),
    re.compile(r"\bAPP_ID\b"),
    re.compile(r"\bOPENAI_API_KEY\b"),
]

REFERENTIAL_PATTERN = re.compile(
    r"\b(above|below|earlier|previous|prior|same as|as before|continue|still|again"
    r"|this|that|it|they|these|those)\b"
)

BID_COOKIE_PATTERN = re.compile(r"(?:^|,\s*)bid=([^;,\s]+)")


class FailureKind(str, Enum):
    """Why an external lookup produced no evidence."""
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    NETWORK = "network"
    EMPTY = "empty"
    UNKNOWN = "unknown"


@dataclass
class EvidenceSuccess:
    """Usable external evidence."""
    context_text: str
    sources: List[str] = field(default_factory=list)
    answer: str = ""


@dataclass
class EvidenceFailure:
    """A typed external lookup failure."""
    kind: FailureKind
    error: str = ""


EvidenceResult = Union[EvidenceSuccess, EvidenceFailure]


def clip(text: str, max_chars: int) -> str:
    """Trim and clip text, marking the cut."""
    trimmed = (text or "").strip()
    if len(trimmed) <= max_chars:
        return trimmed
    return trimmed[:max(0, max_chars - 20)] + TRUNCATION_MARKER


def sanitize(text: str, max_chars: int = MAX_SANITIZED_CHARS) -> str:
    """
    Strip code and repo excerpts before text leaves the process.

    Fenced code blocks become "[code omitted]"; "File:" headers, bare
    "Sources:" lines and numbered excerpt lines are dropped.
    """
    raw = text or ""
    if not raw.strip():
        return ""

    out = re.sub(r"```[\s\S]*?```", "[code omitted]", raw)

    kept = []
    for line in re.split(r"\r?\n", out):
        stripped = line.strip()
        if re.match(r"^file:\s+", stripped, re.IGNORECASE):
            continue
        if re.match(r"^sources:\s*$", stripped, re.IGNORECASE):
            continue
        if re.match(r"^\d+\s*\|\s+", stripped):
            continue
        kept.append(line)

    out = "\n".join(kept)
    out = re.sub(r"[ \t]+\n", "\n", out)
    out = re.sub(r"\n{3,}", "\n\n", out)
    return clip(out.strip(), max_chars)


def looks_sensitive(text: str) -> bool:
    """True when text appears to contain credentials or secret names."""
    return any(p.search(text) for p in SENSITIVE_PATTERNS)


def should_include_transcript(question: str, transcript: str) -> bool:
    """Short or referential questions need the chat transcript to make sense."""
    if not (transcript or "").strip():
        return False
    q = (question or "").strip()
    if not q:
        return False
    if len(q) < 40:
        return True
    return bool(REFERENTIAL_PATTERN.search(q.lower()))


def extract_bid_cookie(set_cookie: Optional[str]) -> Optional[str]:
    if not set_cookie:
        return None
    match = BID_COOKIE_PATTERN.search(set_cookie)
    return match.group(1).strip() if match else None


class EvidenceProvider(ABC):
    """Base class for external evidence sources."""

    name: str = "external"

    @abstractmethod
    def should_query(self, question: str, transcript: str = "") -> bool:
        """Decide whether this source is worth asking about the question."""
        pass

    @abstractmethod
    async def query(self, question: str, transcript: str = "") -> EvidenceResult:
        """Look up evidence for a question. Must not raise."""
        pass


class DocsQAProvider(EvidenceProvider):
    """
    Documentation QA service reached over HTTP.

    Sends a non-streaming chat request and turns the answer plus its source
    URIs into an evidence block.
    """

    name = "docs_qa"

    def __init__(
        self,
        base_url: str,
        chat_engine: str = "default",
        timeout_seconds: float = 120.0,
        max_context_chars: int = 24_000,
        max_sources: int = 12,
        keywords: Sequence[str] = (),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Service root, e.g. "https://tidb.ai".
            chat_engine: Chat engine name sent with each request.
            timeout_seconds: Bound on the whole request.
            max_context_chars: Clip length for the returned answer.
            max_sources: Cap on returned source URIs.
            keywords: Topic keywords a question must mention (empty = any).
            transport: Optional httpx transport, mainly for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.chat_engine = chat_engine
        self.timeout_seconds = max(0.001, float(timeout_seconds))
        self.max_context_chars = max_context_chars
        self.max_sources = max(0, max_sources)
        self.keywords = [k.strip().lower() for k in keywords if k and k.strip()]
        self._transport = transport
        self._bid_cookie: Optional[str] = None

        self._keyword_pattern = None
        if self.keywords:
            alternatives = "|".join(re.escape(k) for k in self.keywords)
            self._keyword_pattern = re.compile(rf"\b(?:{alternatives})\b")

    @property
    def chats_url(self) -> str:
        return f"{self.base_url}/api/v1/chats"

    def should_query(self, question: str, transcript: str = "") -> bool:
        if not (question or "").strip():
            return False
        combined = f"{question}\n\n{transcript or ''}".strip()
        if self._keyword_pattern is not None and not self._keyword_pattern.search(combined.lower()):
            return False
        if looks_sensitive(combined):
            return False
        return True

    def build_prompt(self, question: str, transcript: str = "") -> str:
        clean_question = sanitize(question)
        clean_transcript = ""
        if should_include_transcript(clean_question, transcript):
            clean_transcript = sanitize(transcript)

        return "\n".join([
            "User question:",
            clean_question or "(none)",
            "",
            "Chat context (optional):",
            clean_transcript or "(none)",
            "",
            "Please answer using ONLY official documentation and include the most relevant links.",
        ])

    async def query(self, question: str, transcript: str = "") -> EvidenceResult:
        payload = {
            "stream": False,
            "chat_engine": self.chat_engine,
            "messages": [{"role": "user", "content": self.build_prompt(question, transcript)}],
        }
        headers = {"Content-Type": "application/json"}
        if self._bid_cookie:
            headers["Cookie"] = f"bid={self._bid_cookie}"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await asyncio.wait_for(
                    client.post(self.chats_url, headers=headers, json=payload),
                    timeout=self.timeout_seconds,
                )

            bid = extract_bid_cookie(response.headers.get("set-cookie"))
            if bid:
                self._bid_cookie = bid

            if response.status_code < 200 or response.status_code >= 300:
                logger.warning(f"External evidence HTTP {response.status_code}")
                return EvidenceFailure(
                    FailureKind.PROTOCOL,
                    f"HTTP {response.status_code}: {response.text[:200]}",
                )

            try:
                data = response.json()
            except ValueError as e:
                logger.warning(f"External evidence returned invalid JSON: {e}")
                return EvidenceFailure(FailureKind.PROTOCOL, f"invalid JSON: {e}")

            return self._to_result(data)

        except asyncio.TimeoutError:
            logger.warning(f"External evidence timed out after {self.timeout_seconds}s")
            return EvidenceFailure(FailureKind.TIMEOUT, f"timed out after {self.timeout_seconds}s")
        except httpx.TimeoutException as e:
            logger.warning(f"External evidence timed out after {self.timeout_seconds}s")
            return EvidenceFailure(FailureKind.TIMEOUT, str(e) or "timed out")
        except httpx.TransportError as e:
            logger.warning(f"External evidence network error: {e}")
            return EvidenceFailure(FailureKind.NETWORK, str(e))
        except Exception as e:
            logger.warning(f"External evidence query failed: {e}")
            return EvidenceFailure(FailureKind.UNKNOWN, str(e))

    def _to_result(self, data: Any) -> EvidenceResult:
        if not isinstance(data, dict):
            return EvidenceFailure(FailureKind.PROTOCOL, "response is not a JSON object")

        content = data.get("content")
        answer = content.strip() if isinstance(content, str) else ""
        if not answer:
            return EvidenceFailure(FailureKind.EMPTY, "empty answer")

        sources: List[str] = []
        raw_sources = data.get("sources")
        for item in raw_sources if isinstance(raw_sources, list) else []:
            if len(sources) >= self.max_sources:
                break
            uri = item.get("source_uri") if isinstance(item, dict) else None
            uri = uri.strip() if isinstance(uri, str) else ""
            if uri and uri not in sources:
                sources.append(uri)

        clipped = clip(answer, self.max_context_chars)
        lines = [
            "Docs QA answer (treat as external evidence; verify against repo if applicable):",
            clipped,
        ]
        if sources:
            lines += ["", "Docs QA sources:"] + [f"- {s}" for s in sources]

        return EvidenceSuccess(context_text="\n".join(lines), sources=sources, answer=clipped)
