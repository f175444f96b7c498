"""
Core Configuration using Pydantic Settings
"""
from typing import Annotated, Optional, List, Literal
from pydantic import ConfigDict, Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "ResearchFlow API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Paper discovery, citation graphs and paper chat"

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    # Storage: "database" (SQLAlchemy) or "memory" (process-local maps)
    STORAGE_BACKEND: Literal["database", "memory"] = Field(default="database")
    # Any SQLAlchemy URL (Postgres, SQLite, etc.)
    DATABASE_URL: str = Field(default="sqlite:///./researchflow.db")

    # Semantic Scholar
    SEMANTIC_SCHOLAR_BASE_URL: str = Field(default="https://api.semanticscholar.org/graph/v1")
    SEMANTIC_SCHOLAR_API_KEY: Optional[SecretStr] = Field(default=None)
    SEMANTIC_SCHOLAR_TIMEOUT: float = Field(default=20.0)
    SEARCH_FETCH_LIMIT: int = Field(default=100, ge=1, le=100)
    AUTHOR_ENRICHMENT_LIMIT: int = Field(default=3, ge=0)

    # Search cache
    SEARCH_CACHE_TTL_SECONDS: int = Field(default=3600, gt=0)
    SEARCH_HISTORY_PREVIEW_SIZE: int = Field(default=5, ge=0)

    # Citation graph
    GRAPH_MAX_DEPTH: int = Field(default=3, ge=0)

    # LLM Configuration (OpenAI-compatible, credential supplied per user)
    LLM_DEFAULT_BASE_URL: str = Field(default="https://api.openai.com/v1")
    LLM_MODEL: str = Field(default="gpt-4o")
    LLM_TEMPERATURE: float = Field(default=0.7)
    LLM_MAX_TOKENS: int = Field(default=1000)

    # Security
    ENCRYPTION_KEY: Optional[SecretStr] = Field(default=None)  # urlsafe base64, 32 bytes
    JWT_SECRET_KEY: Optional[SecretStr] = Field(default=None)
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: Optional[str] = Field(default=None)

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Process-wide settings loaded from the environment; create_app() takes it explicitly
settings = Settings()
