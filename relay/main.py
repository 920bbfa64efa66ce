import json
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from relay.broadcast import BroadcastEngine
from relay.config import settings
from relay.connections import ConnectionManager
from relay.logging_utils import setup_logging, RequestLoggingMiddleware
from relay.metrics import get_metrics, get_metrics_content_type, record_socket_event
from relay.otp import OtpAuthenticator
from relay.rooms import RoomRegistry
from relay.schemas import HealthResponse
from relay.storage import MessageLog


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_engine() -> BroadcastEngine:
    """Create the message log, OTP store and channel registry for one server lifetime."""
    connections = ConnectionManager(
        RoomRegistry(),
        send_timeout=settings.SEND_TIMEOUT_SECONDS,
    )
    otp = OtpAuthenticator(
        ttl_seconds=settings.OTP_TTL_SECONDS,
        log_codes=settings.LOG_OTP_CODES,
    )
    return BroadcastEngine(
        MessageLog(),
        otp,
        connections,
        max_attachment_bytes=settings.MAX_ATTACHMENT_BYTES,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: create the in-memory state the relay owns
    - Shutdown: state is discarded with the process
    """
    app.state.engine = build_engine()
    logger.info("Chat relay started")
    yield
    logger.info(f"Chat relay stopping, {len(app.state.engine.log)} messages discarded")


app = FastAPI(
    title="Chat Relay",
    description="Real-time chat relay with rooms, typing, delivery state and OTP login",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
)
app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Chat server running"


@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


# =============================================================================
# Channel Route
# =============================================================================

@app.websocket("/ws")
async def channel(websocket: WebSocket) -> None:
    """
    One client channel.

    Frames are JSON objects of the form {"event": name, "data": payload}.
    Binary frames and frames that are not valid JSON are dropped like any
    malformed event; the channel stays open.
    """
    engine: BroadcastEngine = websocket.app.state.engine
    channel_id = await engine.connections.connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                # Binary frames carry no event
                logger.warning("Dropped binary frame", extra={"channel_id": channel_id})
                record_socket_event("unknown", "malformed")
                continue
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Dropped non-JSON frame", extra={"channel_id": channel_id})
                record_socket_event("unknown", "malformed")
                continue
            await engine.dispatch(channel_id, frame)
    finally:
        engine.connections.disconnect(channel_id)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    Includes HTTP request counts and latency, channel event outcomes,
    OTP outcomes and the number of connected channels.
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )


def run() -> None:
    """Start the server on the configured host and port."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
