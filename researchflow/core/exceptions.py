"""
Domain exceptions, mapped to HTTP responses by the handlers in main.py
"""
from typing import Optional

from fastapi import status


class ResearchFlowError(Exception):
    """Base error carrying the HTTP status it should surface as"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An error occurred"

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ConfigurationError(ResearchFlowError):
    detail = "Server is misconfigured"


class ValidationFailedError(ResearchFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid request"


class AuthenticationError(ResearchFlowError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication required"


class NotFoundError(ResearchFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class PaperNotFoundError(NotFoundError):
    detail = "Paper not found"


class SessionNotFoundError(NotFoundError):
    detail = "Chat session not found"


class CredentialNotConfiguredError(ResearchFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "OpenAI API key not configured. Please add your API key in settings."


class UpstreamError(ResearchFlowError):
    """A call to an external provider failed"""

    def __init__(self, detail: Optional[str] = None, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(detail)


class SemanticScholarError(UpstreamError):
    detail = "Semantic Scholar API error"


class LLMUpstreamError(UpstreamError):
    detail = "LLM API error"
