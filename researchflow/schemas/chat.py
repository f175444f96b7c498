from pydantic import Field
from typing import Optional, List, Literal
from datetime import datetime

from researchflow.schemas.common import CamelModel

ChatRole = Literal["user", "assistant"]


class ChatSessionRequest(CamelModel):
    paper_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)


class ChatSessionCreate(ChatSessionRequest):
    user_id: int


class ChatSessionRead(ChatSessionCreate):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChatMessageRequest(CamelModel):
    content: str = Field(..., min_length=1)


class ChatMessageCreate(CamelModel):
    session_id: int
    role: ChatRole
    content: str


class ChatMessageRead(ChatMessageCreate):
    id: int
    created_at: Optional[datetime] = None


class ChatSessionResponse(CamelModel):
    session: ChatSessionRead


class ChatSessionListResponse(CamelModel):
    sessions: List[ChatSessionRead]


class ChatMessageResponse(CamelModel):
    message: ChatMessageRead


class ChatMessageListResponse(CamelModel):
    messages: List[ChatMessageRead]
