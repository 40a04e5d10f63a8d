"""Structure-aware chunking for documents and conversations.

Token counts are estimated as ``ceil(chars / 4)``. Text is split along the
coarsest structural boundary that fits the budget: markdown headings, then
paragraphs, sentences, words, and finally fixed-width character windows.
Nothing is ever truncated; a unit that cannot fit is emitted whole.
"""

import math
import re
from dataclasses import dataclass
from typing import Iterable

from ..models.chat import ChatMessage
from ..models.document import content_hash

CHARS_PER_TOKEN = 4

ROLE_PREFIXES = {"user": "[User]: ", "assistant": "[Assistant]: "}

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_WHITESPACE_RE = re.compile(r"\s")

# (pattern, separator used to re-join the pieces)
_LEVELS = (
    (re.compile(r"\n\s*\n"), "\n\n"),
    (re.compile(r"(?<=[.!?])\s+"), " "),
    (re.compile(r"\s+"), " "),
)


def estimate_tokens(text: str) -> int:
    """Rough token count (1 token ~ 4 characters)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class ChunkOptions:
    """Chunk budget.

    Attributes:
        max_tokens: Upper bound per chunk.
        overlap_tokens: Tokens carried from the end of a chunk into the next.
        min_tokens: Chunks below this are merged into the previous one.
    """
    max_tokens: int = 512
    overlap_tokens: int = 0
    min_tokens: int = 0

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        if self.overlap_tokens < 0:
            raise ValueError("overlap_tokens must be >= 0")
        if self.overlap_tokens >= self.max_tokens:
            raise ValueError("overlap_tokens must be smaller than max_tokens")
        if not 0 <= self.min_tokens <= self.max_tokens:
            raise ValueError("min_tokens must be between 0 and max_tokens")


@dataclass(frozen=True)
class TextChunk:
    """Chunk of a document or note."""
    text: str
    ordinal: int
    heading_path: str = ""


@dataclass(frozen=True)
class ConversationChunk:
    """Chunk of a single chat message, role prefix included."""
    text: str
    ordinal: int
    message_role: str
    message_index: int


def _units(text: str, limit: int, depth: int = 0) -> list[tuple[str, str]]:
    """Split text into (separator, piece) pairs that fit within limit chars."""
    text = text.strip()
    if not text:
        return []
    if len(text) <= limit or limit <= 0:
        return [("", text)]
    if depth == len(_LEVELS):
        return [("", text[i : i + limit]) for i in range(0, len(text), limit)]

    pattern, separator = _LEVELS[depth]
    parts = [p for p in pattern.split(text) if p.strip()]
    if len(parts) == 1:
        return _units(text, limit, depth + 1)

    units: list[tuple[str, str]] = []
    for i, part in enumerate(parts):
        sub = _units(part, limit, depth + 1)
        if i > 0 and sub:
            sub[0] = (separator, sub[0][1])
        units.extend(sub)
    return units


def _overlap_tail(text: str, overlap_chars: int) -> str:
    """Trailing overlap_chars of text, starting on a word boundary."""
    if overlap_chars <= 0 or len(text) <= overlap_chars:
        return ""
    tail = text[-overlap_chars:]
    if not text[-overlap_chars - 1].isspace():
        match = _WHITESPACE_RE.search(tail)
        tail = tail[match.end():] if match else ""
    return tail.strip()


def _pack(units: Iterable[tuple[str, str]], limit: int, overlap_chars: int = 0) -> list[str]:
    """Greedily accumulate units into chunks of at most limit chars."""
    chunks: list[str] = []
    buffer = ""
    for separator, piece in units:
        if not buffer:
            buffer = piece
            continue
        candidate = f"{buffer}{separator}{piece}"
        if len(candidate) <= limit:
            buffer = candidate
            continue

        chunks.append(buffer)
        tail = _overlap_tail(buffer, overlap_chars)
        carried = f"{tail}{separator or ' '}{piece}" if tail else piece
        buffer = carried if len(carried) <= limit else piece

    if buffer:
        chunks.append(buffer)
    return chunks


def _sections(text: str) -> list[tuple[str, str]]:
    """Split markdown into (heading_path, body) sections."""
    sections: list[tuple[str, str]] = []
    stack: list[tuple[int, str]] = []
    path = ""
    lines: list[str] = []
    in_fence = False

    for line in text.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
        match = None if in_fence else _HEADING_RE.match(line)
        if match is None:
            lines.append(line)
            continue

        if lines:
            sections.append((path, "\n".join(lines)))
        level = len(match.group(1))
        while stack and stack[-1][0] >= level:
            stack.pop()
        stack.append((level, match.group(2)))
        path = " > ".join(title for _, title in stack)
        lines = [line]

    if lines:
        sections.append((path, "\n".join(lines)))
    return [(p, body) for p, body in sections if body.strip()]


def _merge_small(
    pieces: list[tuple[str, str]], min_tokens: int, limit: int
) -> list[tuple[str, str]]:
    merged: list[tuple[str, str]] = []
    for path, text in pieces:
        if merged and estimate_tokens(text) < min_tokens:
            prev_path, prev_text = merged[-1]
            combined = f"{prev_text}\n\n{text}"
            if len(combined) <= limit:
                merged[-1] = (prev_path, combined)
                continue
        merged.append((path, text))
    return merged


def chunk_text(text: str, options: ChunkOptions | None = None) -> list[TextChunk]:
    """Chunk markdown or plain text.

    Args:
        text: Source text.
        options: Token budget; defaults to ChunkOptions().

    Returns:
        Chunks with contiguous ordinals starting at 0.
    """
    options = options or ChunkOptions()
    limit = options.max_tokens * CHARS_PER_TOKEN
    overlap_chars = options.overlap_tokens * CHARS_PER_TOKEN

    pieces: list[tuple[str, str]] = []
    for path, body in _sections(text):
        for piece in _pack(_units(body, limit), limit, overlap_chars):
            pieces.append((path, piece))

    if options.min_tokens:
        pieces = _merge_small(pieces, options.min_tokens, limit)

    return [
        TextChunk(text=piece, ordinal=i, heading_path=path)
        for i, (path, piece) in enumerate(pieces)
    ]


def _include_message(message: ChatMessage) -> bool:
    return message.role in ROLE_PREFIXES and bool(message.text().strip())


def chunk_conversation(
    messages: list[ChatMessage], max_tokens: int = 500
) -> list[ConversationChunk]:
    """Chunk chat messages, one or more chunks per message.

    Only user and assistant messages with text are used. Every chunk carries
    the role prefix, and the prefix counts against the budget.

    Args:
        messages: Conversation messages in order.
        max_tokens: Upper bound per chunk.

    Returns:
        Chunks with contiguous ordinals starting at 0.
    """
    if max_tokens <= 0:
        raise ValueError("max_tokens must be > 0")
    limit = max_tokens * CHARS_PER_TOKEN

    pieces: list[tuple[str, str, int]] = []
    message_index = 0
    for message in messages:
        if not _include_message(message):
            continue

        prefix = ROLE_PREFIXES[message.role]
        raw = message.text().strip()
        room = limit - len(prefix)
        if len(prefix) + len(raw) <= limit:
            parts = [raw]
        else:
            parts = _pack(_units(raw, room), room)

        for part in parts:
            pieces.append((prefix + part, message.role, message_index))
        message_index += 1

    return [
        ConversationChunk(text=text, ordinal=i, message_role=role, message_index=index)
        for i, (text, role, index) in enumerate(pieces)
    ]


def conversation_content_hash(messages: list[ChatMessage]) -> str:
    """Digest of the indexable content, for skipping unchanged conversations."""
    relevant = "|".join(
        f"{m.role}:{m.text()}" for m in messages if _include_message(m)
    )
    return content_hash(relevant)
