"""
FastAPI application for the Nightscout lookup service.

This module exposes the lookup pipeline over HTTP so that a chat
transport can hand it request contexts and render the result.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import Settings, get_settings
from .constants import DEFAULT_LOG_FORMAT, REACTION_EMOJI
from .exceptions import ClassifiedError, ErrorKind
from .models import HealthResponse, PresentationModel, ReactionTrigger, ScopeType
from .pipeline import GlucosePipeline, get_pipeline, make_context, render_failure

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format=DEFAULT_LOG_FORMAT,
)
logger = logging.getLogger(__name__)


# HTTP status returned for each failure kind
STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.UNCONFIGURED: 404,
    ErrorKind.NO_CONFIGURED_URL: 404,
    ErrorKind.TOO_MANY_MENTIONS: 400,
    ErrorKind.EVERYONE_MENTIONED: 400,
    ErrorKind.PRIVATE_DATA: 403,
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.NO_REMOTE_DATA: 503,
    ErrorKind.MALFORMED_REMOTE_DATA: 502,
    ErrorKind.REMOTE_STATUS: 502,
    ErrorKind.HOST_UNREACHABLE: 504,
    ErrorKind.UNEXPECTED: 500,
}


# =============================================================================
# Request / Response Models
# =============================================================================

class LookupRequest(BaseModel):
    """A lookup request as sent by the chat transport."""

    invoker_id: str
    arguments: str = ""
    mentioned_ids: List[str] = Field(default_factory=list)
    mentions_everyone: bool = False
    scope_id: Optional[str] = None
    scope_type: ScopeType = ScopeType.TEXT
    channel_id: Optional[str] = None


class LookupResponse(BaseModel):
    """Presentation and reactions for a successful lookup."""

    presentation: PresentationModel
    reactions: List[ReactionTrigger]
    emoji: List[str]


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logging.getLogger().setLevel(get_settings().log_level)
    logger.info("Nightscout lookup service starting up")
    yield
    logger.info("Nightscout lookup service shutting down")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Nightscout Lookup",
    description="Resolves Nightscout sites for chat users and summarizes their latest reading",
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================

@app.middleware("http")
async def add_request_context(request: Request, call_next):
    """Add request ID and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    start_time = datetime.now()

    request.state.request_id = request_id

    response = await call_next(request)

    duration_ms = (datetime.now() - start_time).total_seconds() * 1000

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    logger.info(
        "Request completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }
    )

    return response


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/", response_model=HealthResponse)
async def root():
    """
    Root endpoint - service information.

    Returns service name and status for quick verification.
    """
    return HealthResponse(
        status="healthy",
        service="nightscout-lookup",
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for liveness probes."""
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
    }


@app.post("/lookup", response_model=LookupResponse)
def lookup(
    body: LookupRequest,
    pipeline: GlucosePipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """
    Resolve a Nightscout site and summarize its latest reading.

    Declared without ``async`` so FastAPI runs the blocking fetches in its
    threadpool.

    **Failure Responses**: the body carries the error kind, the message to
    show (if any) and whether to react with an error instead.
    """
    context = make_context(
        pipeline.directory,
        body.invoker_id,
        arguments=body.arguments,
        mentioned_ids=body.mentioned_ids,
        mentions_everyone=body.mentions_everyone,
        scope_id=body.scope_id,
        scope_type=body.scope_type,
        channel_id=body.channel_id,
    )

    outcome = pipeline.handle_request(context)

    if isinstance(outcome, ClassifiedError):
        notice = render_failure(outcome, context.invoker, settings.command_prefix)
        return JSONResponse(
            status_code=STATUS_BY_KIND[outcome.kind],
            content=notice.model_dump(),
        )

    reactions = sorted(outcome.reactions, key=lambda trigger: trigger.value)
    return LookupResponse(
        presentation=outcome.presentation,
        reactions=reactions,
        emoji=[REACTION_EMOJI[trigger.value] for trigger in reactions],
    )
