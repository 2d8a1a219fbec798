# server/web/app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared_lib.config import get_config
from server.web.app.api import content_moderation
from server.web.app.db import init_models
from server.web.app.middleware.permissions import PermissionDenied
from server.web.app.services.content_adapters import ContentNotFoundError
from server.web.app.services.content_moderation_service import (
    ModerationOperationError,
    ModerationValidationError,
)
from server.web.app.services.logging_service import LoggingMiddleware, logging_service
from server.web.app.services.spam_detection_service import (
    SpamKeywordExistsError,
    SpamKeywordNotFoundError,
)

logger = logging.getLogger(__name__)

settings = get_config()

app = FastAPI(
    title=settings.app_name,
    description="Unified moderation of articles, forum posts and job listings with spam scoring.",
    version=settings.version,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.web_server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# API routes
app.include_router(content_moderation.router, prefix="/api")


@app.exception_handler(PermissionDenied)
async def permission_denied_handler(request: Request, exc: PermissionDenied):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(ContentNotFoundError)
async def content_not_found_handler(request: Request, exc: ContentNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(SpamKeywordNotFoundError)
async def keyword_not_found_handler(request: Request, exc: SpamKeywordNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(SpamKeywordExistsError)
async def keyword_exists_handler(request: Request, exc: SpamKeywordExistsError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ModerationValidationError)
async def validation_error_handler(request: Request, exc: ModerationValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ModerationOperationError)
async def operation_error_handler(request: Request, exc: ModerationOperationError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.on_event("startup")
async def startup_event():
    logging_service.configure(settings)
    if settings.environment != "production":
        await init_models()
    logger.info(f"{settings.app_name} {settings.version} started ({settings.environment})")


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
