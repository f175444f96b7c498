"""
API Endpoints for paper chat sessions
"""
from fastapi import APIRouter, Depends, status
from loguru import logger

from researchflow.api.deps import get_chat_service, get_current_user, get_storage
from researchflow.core.exceptions import PaperNotFoundError
from researchflow.schemas.chat import (
    ChatMessageListResponse, ChatMessageRequest, ChatMessageResponse,
    ChatSessionListResponse, ChatSessionRequest, ChatSessionResponse,
)
from researchflow.schemas.user import UserRead
from researchflow.services.chat_service import ChatService
from researchflow.storage.base import Storage

router_chat = APIRouter()


@router_chat.post(
    "/session",
    response_model=ChatSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    session_request: ChatSessionRequest,
    user: UserRead = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    storage: Storage = Depends(get_storage),
):
    '''Start a chat session about a stored paper'''
    if storage.get_paper(session_request.paper_id) is None:
        raise PaperNotFoundError()

    session = chat_service.create_session(user.id, session_request.paper_id, session_request.title)
    logger.info(f"Created chat session {session.id} for user {user.id}")
    return ChatSessionResponse(session=session)


@router_chat.get("/sessions", response_model=ChatSessionListResponse)
async def list_sessions(
    user: UserRead = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    '''Chat sessions of the current user, newest first'''
    return ChatSessionListResponse(sessions=chat_service.list_sessions(user.id))


@router_chat.get(
    "/session/{session_id}/messages",
    response_model=ChatMessageListResponse,
)
async def list_messages(
    session_id: int,
    user: UserRead = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    '''Messages of a session in conversation order'''
    return ChatMessageListResponse(messages=chat_service.get_messages(user.id, session_id))


@router_chat.post(
    "/session/{session_id}/message",
    response_model=ChatMessageResponse,
)
async def send_message(
    session_id: int,
    message_request: ChatMessageRequest,
    user: UserRead = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    '''
    Send a message and get the assistant's reply

    The message is stored before the LLM is called; if the call fails the
    message stays unanswered and can be resent.
    '''
    reply = await chat_service.send_message(user.id, session_id, message_request.content)
    return ChatMessageResponse(message=reply)
