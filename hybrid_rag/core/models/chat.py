"""Chat domain models."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MessagePart:
    """Typed message part ("text", "tool-invocation", "reasoning", ...)."""
    type: str
    text: Optional[str] = None


@dataclass
class ChatMessage:
    """Chat message."""
    role: str  # "user" | "assistant" | "system" | "tool"
    content: str = ""
    parts: list[MessagePart] = field(default_factory=list)

    def text(self) -> str:
        """Plain text of the message; non-text parts are ignored."""
        if not self.parts:
            return self.content
        return "\n\n".join(
            p.text for p in self.parts if p.type == "text" and isinstance(p.text, str)
        )


@dataclass
class Conversation:
    """Stored conversation."""
    id: str
    title: str
    messages: list[ChatMessage] = field(default_factory=list)
