"""
Paper chat: session bookkeeping and forwarding turns to an OpenAI-compatible endpoint
"""
from typing import List, Optional, Tuple

import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from loguru import logger

from researchflow.core.config import Settings
from researchflow.core.exceptions import (
    CredentialNotConfiguredError, LLMUpstreamError, PaperNotFoundError, SessionNotFoundError
)
from researchflow.core.security import CredentialCipher
from researchflow.schemas.chat import (
    ChatMessageCreate, ChatMessageRead, ChatSessionCreate, ChatSessionRead
)
from researchflow.schemas.paper import PaperRead
from researchflow.storage.base import Storage

FALLBACK_REPLY = "Sorry, I could not generate a response."


def build_system_prompt(paper: PaperRead) -> str:
    authors = ", ".join(a.name for a in paper.authors if a.name) or "Unknown"

    return f"""You are an AI research assistant helping to analyze and discuss academic papers.

Current paper being discussed:
Title: {paper.title}
Authors: {authors}
Year: {paper.year or 'Unknown'}
Abstract: {paper.abstract or 'No abstract available'}
Venue: {paper.venue or 'Unknown'}
Citation Count: {paper.citation_count or 0}

Instructions:
- Provide helpful, accurate responses about this paper
- Draw insights from the paper's content when available
- Suggest related research directions or questions
- Help the user understand complex concepts
- Be concise but thorough in your explanations
- If you don't have specific information about the paper, say so clearly"""


def to_langchain_messages(paper: PaperRead, history: List[ChatMessageRead]) -> List[BaseMessage]:
    messages: List[BaseMessage] = [SystemMessage(content=build_system_prompt(paper))]
    for message in history:
        if message.role == "assistant":
            messages.append(AIMessage(content=message.content))
        else:
            messages.append(HumanMessage(content=message.content))
    return messages


class ChatService:
    """Chat sessions about a paper, answered with the user's own LLM credential"""

    def __init__(self, storage: Storage, cipher: CredentialCipher, settings: Settings):
        self.storage = storage
        self.cipher = cipher
        self.settings = settings

    # Sessions ----------------------------------------------------------------

    def create_session(self, user_id: int, paper_id: str, title: str) -> ChatSessionRead:
        return self.storage.create_chat_session(
            ChatSessionCreate(user_id=user_id, paper_id=paper_id, title=title)
        )

    def list_sessions(self, user_id: int) -> List[ChatSessionRead]:
        return self.storage.get_user_chat_sessions(user_id)

    def get_owned_session(self, user_id: int, session_id: int) -> ChatSessionRead:
        session = self.storage.get_chat_session(session_id)
        if session is None or session.user_id != user_id:
            raise SessionNotFoundError()
        return session

    def get_messages(self, user_id: int, session_id: int) -> List[ChatMessageRead]:
        self.get_owned_session(user_id, session_id)
        return self.storage.get_chat_messages(session_id)

    # Conversation ------------------------------------------------------------

    async def send_message(self, user_id: int, session_id: int, content: str) -> ChatMessageRead:
        """Persist the user's turn, ask the LLM, persist and return the reply.

        The user message is stored before the LLM call, so a failed call
        leaves it unanswered and the client may resend.
        """
        session = self.get_owned_session(user_id, session_id)

        paper = self.storage.get_paper(session.paper_id)
        if paper is None:
            raise PaperNotFoundError()

        self.storage.add_chat_message(
            ChatMessageCreate(session_id=session_id, role="user", content=content)
        )
        history = self.storage.get_chat_messages(session_id)

        reply = await self.respond(user_id, paper, history)

        return self.storage.add_chat_message(
            ChatMessageCreate(session_id=session_id, role="assistant", content=reply)
        )

    def resolve_credential(self, user_id: int) -> Tuple[str, str]:
        user = self.storage.get_user(user_id)
        if user is None or not user.llm_api_key:
            raise CredentialNotConfiguredError()
        api_key = self.cipher.decrypt(user.llm_api_key)
        return api_key, user.llm_base_url or self.settings.LLM_DEFAULT_BASE_URL

    def build_llm(self, api_key: str, base_url: str) -> ChatOpenAI:
        return ChatOpenAI(
            model=self.settings.LLM_MODEL,
            api_key=api_key,
            base_url=base_url,
            temperature=self.settings.LLM_TEMPERATURE,
            max_tokens=self.settings.LLM_MAX_TOKENS,
            max_retries=0,
        )

    async def respond(self, user_id: int, paper: PaperRead, history: List[ChatMessageRead]) -> str:
        """Answer the last turn of history in the context of paper"""
        api_key, base_url = self.resolve_credential(user_id)
        llm = self.build_llm(api_key, base_url)
        messages = to_langchain_messages(paper, history)

        logger.info(f"Forwarding {len(history)} chat turns for paper {paper.paper_id}")
        try:
            result = await llm.agenerate([messages])
        except openai.APIStatusError as e:
            logger.error(f"LLM endpoint returned {e.status_code}: {e.message}")
            raise LLMUpstreamError(
                f"OpenAI API error: {e.status_code}. {e.message}", upstream_status=e.status_code
            ) from e
        except openai.APIError as e:
            logger.error(f"LLM request failed: {e}")
            raise LLMUpstreamError(f"OpenAI API error: {e}") from e

        generations = result.generations[0] if result.generations else []
        text = generations[0].text if generations else ""
        return text or FALLBACK_REPLY

    async def verify_api_key(self, api_key: str, base_url: Optional[str] = None) -> bool:
        """Check a credential by listing the endpoint's models"""
        client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or self.settings.LLM_DEFAULT_BASE_URL,
            max_retries=0,
        )
        try:
            await client.models.list()
            return True
        except openai.OpenAIError as e:
            logger.info(f"API key verification failed: {e}")
            return False
        finally:
            await client.close()
