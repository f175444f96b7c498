"""
API Endpoints for accounts and LLM credentials
"""
from fastapi import APIRouter, Depends, status

from researchflow.api.deps import get_auth_service, get_current_user
from researchflow.schemas.user import (
    ApiKeyRequest, AuthResponse, LoginRequest, RegisterRequest, UserPublic, UserRead
)
from researchflow.services.auth_service import AuthService

router_auth = APIRouter()


@router_auth.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    register_request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Create an account

    - **apiKey / baseUrl**: Optional OpenAI-compatible credential, verified before it is stored
    """
    return await auth_service.register(
        email=register_request.email,
        username=register_request.username,
        password=register_request.password,
        api_key=register_request.api_key,
        base_url=register_request.base_url,
    )


@router_auth.post("/login", response_model=AuthResponse)
async def login(
    login_request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Log in with email or username"""
    return auth_service.login(login_request.login, login_request.password)


@router_auth.post("/logout")
async def logout():
    """Tokens are stateless; the client discards its token"""
    return {"success": True}


@router_auth.get("/me", response_model=UserPublic)
async def me(user: UserRead = Depends(get_current_user)):
    return UserPublic.from_user(user)


@router_auth.post("/api-key")
async def update_api_key(
    api_key_request: ApiKeyRequest,
    user: UserRead = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Verify and store the current user's LLM credential"""
    await auth_service.update_api_key(user.id, api_key_request.api_key, api_key_request.base_url)
    return {"success": True}
