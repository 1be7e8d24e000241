"""Request and response bodies for the HTTP API."""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys used by the web client."""
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(CamelModel):
    # Optional so a missing message reaches the endpoint and gets the uniform 400
    message: Optional[str] = Field(None, description="User message")
    thread_id: Optional[str] = Field(None, alias="threadId", description="Existing thread to continue")


class ChatMessage(BaseModel):
    role: str = Field(description="Message role (user/assistant/system)")
    content: str = Field(description="Message content")
    timestamp: Optional[str] = Field(None, description="ISO-8601 arrival time")


class ChatResponse(CamelModel):
    response: ChatMessage
    thread_id: str = Field(alias="threadId")
    timestamp: str
    request_id: str = Field(alias="requestId")


class HistoryResponse(CamelModel):
    thread_id: str = Field(alias="threadId")
    history: List[ChatMessage]
    country: Optional[str] = None
    query_type: Optional[str] = Field(None, alias="queryType")
    request_id: str = Field(alias="requestId")


class ClearResponse(CamelModel):
    message: str
    thread_id: str = Field(alias="threadId")
    request_id: str = Field(alias="requestId")


class HealthResponse(CamelModel):
    status: str
    message: str
    timestamp: str
    request_id: str = Field(alias="requestId")

