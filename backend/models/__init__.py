"""Data models for the Travel Advisory Assistant."""
from .conversation import Message, ConversationState, Role, QueryType
from .api import ChatRequest, ChatResponse, ChatMessage, HistoryResponse, ClearResponse, HealthResponse

__all__ = [
    "Message",
    "ConversationState",
    "Role",
    "QueryType",
    "ChatRequest",
    "ChatResponse",
    "ChatMessage",
    "HistoryResponse",
    "ClearResponse",
    "HealthResponse",
]
