from typing import Optional

from loguru import logger

from researchflow.core.config import Settings
from researchflow.core.exceptions import AuthenticationError, ValidationFailedError
from researchflow.core.security import (
    CredentialCipher, create_access_token, hash_password, verify_password
)
from researchflow.schemas.user import AuthResponse, UserCreate, UserPublic, UserRead
from researchflow.services.chat_service import ChatService
from researchflow.storage.base import Storage, DuplicateRecordError


class AuthService:
    """Account registration, login and LLM credential management"""

    def __init__(self, storage: Storage, cipher: CredentialCipher, chat_service: ChatService, settings: Settings):
        self.storage = storage
        self.cipher = cipher
        self.chat_service = chat_service
        self.settings = settings

    def _auth_response(self, user: UserRead) -> AuthResponse:
        return AuthResponse(
            user=UserPublic.from_user(user),
            token=create_access_token(user.id, self.settings),
        )

    async def register(
        self,
        email: str,
        username: str,
        password: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> AuthResponse:
        if self.storage.get_user_by_email(email):
            raise ValidationFailedError("Email already registered")
        if self.storage.get_user_by_username(username):
            raise ValidationFailedError("Username already taken")

        if api_key and not await self.chat_service.verify_api_key(api_key, base_url):
            raise ValidationFailedError("Invalid OpenAI API key")

        try:
            user = self.storage.create_user(UserCreate(
                email=email,
                username=username,
                password_hash=hash_password(password),
                llm_api_key=self.cipher.encrypt(api_key) if api_key else None,
                llm_base_url=base_url or self.settings.LLM_DEFAULT_BASE_URL,
            ))
        except DuplicateRecordError:
            raise ValidationFailedError("Email or username already registered")

        logger.info(f"Registration successful: user_id={user.id}")
        return self._auth_response(user)

    def login(self, login: str, password: str) -> AuthResponse:
        user = self.storage.get_user_by_email(login) or self.storage.get_user_by_username(login)
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")

        logger.info(f"Login successful: user_id={user.id}")
        return self._auth_response(user)

    async def update_api_key(self, user_id: int, api_key: str, base_url: Optional[str] = None) -> None:
        if not await self.chat_service.verify_api_key(api_key, base_url):
            raise ValidationFailedError("Invalid API key")

        user = self.storage.update_user_credentials(
            user_id,
            self.cipher.encrypt(api_key),
            base_url or self.settings.LLM_DEFAULT_BASE_URL,
        )
        if user is None:
            raise AuthenticationError("User not found")
