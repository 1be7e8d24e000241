"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class Role:
    """Message author roles."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    ALL = (USER, ASSISTANT, SYSTEM)


class QueryType:
    """Routing labels produced by the intent classifier."""
    GENERAL = "general"
    COUNTRY = "country"

    ALL = (GENERAL, COUNTRY)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """A single turn in a conversation. Immutable once appended."""
    role: str
    content: str
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.role not in Role.ALL:
            raise ValueError(f"Unknown message role: {self.role!r}")

    def to_chat(self) -> Dict[str, str]:
        """Shape used by chat-completion APIs."""
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        timestamp = data.get("timestamp")
        return cls(
            role=data["role"],
            content=data["content"],
            timestamp=datetime.fromisoformat(timestamp) if timestamp else utcnow(),
        )


@dataclass
class ConversationState:
    """
    Checkpoint for one thread: ordered message history plus the last
    detected routing context.

    Attributes:
        messages: Messages in arrival order
        country: Last detected country, if any
        query_type: Last detected query type, if any
        updated_at: Time of the last persisted write
    """
    messages: List[Message] = field(default_factory=list)
    country: Optional[str] = None
    query_type: Optional[str] = None
    updated_at: Optional[datetime] = None

    def append(self, message: Message) -> None:
        self.messages.append(message)

    def copy(self) -> "ConversationState":
        """Shallow copy with its own message list; messages themselves are immutable."""
        return ConversationState(
            messages=list(self.messages),
            country=self.country,
            query_type=self.query_type,
            updated_at=self.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [message.to_dict() for message in self.messages],
            "country": self.country,
            "query_type": self.query_type,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationState":
        updated_at = data.get("updated_at")
        return cls(
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            country=data.get("country"),
            query_type=data.get("query_type"),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
