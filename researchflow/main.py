from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from typing import Optional
import time

from contextlib import asynccontextmanager
from researchflow.core.config import Settings, settings as default_settings
from researchflow.core.exceptions import ResearchFlowError
from researchflow.core.logging import setup_logging
from researchflow.core.security import CredentialCipher, require_jwt_secret
from researchflow.api.v1.router import api_router
from researchflow.clients.semantic_scholar import SemanticScholarClient
from researchflow.services.single_flight import SingleFlight
from researchflow.storage.base import Storage
from researchflow.storage.factory import build_storage

from dotenv import load_dotenv
load_dotenv()


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    scholar_client: Optional[SemanticScholarClient] = None,
) -> FastAPI:
    """Build the application; storage and scholar_client default to ones built from settings"""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run on startup"""
        setup_logging(settings)
        logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
        logger.info(f"API documentation: {settings.API_PREFIX}/docs")

        # Refuse to start without signing and encryption keys
        require_jwt_secret(settings)
        app.state.cipher = CredentialCipher.from_settings(settings)

        app.state.storage = storage or build_storage(settings)
        app.state.storage.initialize()
        app.state.scholar_client = scholar_client or SemanticScholarClient.from_settings(settings)
        app.state.single_flight = SingleFlight()

        logger.info(f"Storage backend: {settings.STORAGE_BACKEND}")
        logger.info(f"LLM: {settings.LLM_MODEL}")

        yield

        """Run on shutdown"""
        logger.info("Shutting down application")
        await app.state.scholar_client.aclose()
        app.state.storage.close()
        logger.info("Application shutdown complete")

    # Initialize FastAPI app
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests"""
        start_time = time.time()

        logger.info(f"{request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            logger.info(
                f"{request.method} {request.url.path} "
                f"completed in {process_time:.2f}s with status {response.status_code}"
            )

            response.headers["X-Process-Time"] = str(process_time)

            return response

        except Exception as e:
            logger.error(f"Request failed: {e}")
            raise

    # Exception handlers
    @app.exception_handler(ResearchFlowError)
    async def researchflow_exception_handler(request: Request, exc: ResearchFlowError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(
            status_code=400,
            content={"error": message, "details": jsonable_errors(errors)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(f"Unhandled exception: {exc}")

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.LOG_LEVEL == "DEBUG" else "An error occurred"
            }
        )

    # Health check
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "environment": "production" if settings.LOG_LEVEL == "INFO" else "development"
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "description": settings.DESCRIPTION,
            "docs": f"{settings.API_PREFIX}/docs",
            "openapi": f"{settings.API_PREFIX}/openapi.json"
        }

    # Include API router
    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


def jsonable_errors(errors):
    """Validation errors without the raw input and exception context"""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in errors
    ]


app = create_app()

# CLI runner
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "researchflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=default_settings.LOG_LEVEL.lower()
    )
