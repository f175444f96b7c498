from typing import List
from sqlalchemy.orm import Session

from researchflow.models.chat import ChatSession, ChatMessage
from researchflow.repositories.base import BaseRepository


class ChatSessionRepository(BaseRepository[ChatSession]):
    """Repository for chat sessions"""

    def __init__(self):
        super().__init__(ChatSession)

    def get_by_user(self, db: Session, user_id: int) -> List[ChatSession]:
        return db.query(ChatSession)\
            .filter(ChatSession.user_id == user_id)\
            .order_by(ChatSession.created_at.desc(), ChatSession.id.desc())\
            .all()


class ChatMessageRepository(BaseRepository[ChatMessage]):
    """Repository for chat messages"""

    def __init__(self):
        super().__init__(ChatMessage)

    def get_by_session(self, db: Session, session_id: int) -> List[ChatMessage]:
        """Messages in conversation order"""
        return db.query(ChatMessage)\
            .filter(ChatMessage.session_id == session_id)\
            .order_by(ChatMessage.created_at, ChatMessage.id)\
            .all()


chat_session_repository = ChatSessionRepository()
chat_message_repository = ChatMessageRepository()
