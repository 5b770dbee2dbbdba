"""FastAPI app — health check, realtime WebSocket relay and HTTP speech pipeline.

Data flow (realtime):
  1. Browser connects to ``/realtime`` (optional ``sessionId`` / ``X-Session-Id``).
  2. An UpstreamSession opens the OpenAI realtime socket and waits for
     ``session.created`` before sending ``session.update``.
  3. The SessionGateway relays audio and events both ways until either leg
     closes, then tears the pair down.

Data flow (HTTP):
  ``POST /voice`` → transcription → chat completion stream → segmented TTS,
  streamed back as ``audio/mpeg`` (see ``pipeline/routes.py``).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from voice_relay import __version__
from voice_relay.automation.loader import AutomationConfigStore
from voice_relay.config import Settings
from voice_relay.constants import SESSION_ID_HEADER
from voice_relay.pipeline.history import ConversationHistory
from voice_relay.pipeline.routes import router as voice_router
from voice_relay.realtime.gateway import SessionGateway
from voice_relay.realtime.upstream import UpstreamSession
from voice_relay.telemetry import init_telemetry
from voice_relay.utils import resolve_session_id

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start tracing and load the automation config without blocking startup."""
    settings: Settings = app.state.settings
    init_telemetry(settings.otel_exporter, endpoint=settings.otel_endpoint)

    store: AutomationConfigStore = app.state.automation
    load_task = asyncio.create_task(store.load(settings.automation_id, settings.config_webhook_url))
    logger.info("Voice relay ready — WebSocket endpoint /realtime, health /health")

    yield

    if not load_task.done():
        load_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await load_task


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(title="Voice Relay", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.automation = AutomationConfigStore()
    app.state.history = ConversationHistory()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Session-Id", "Accept"],
        expose_headers=["Content-Type"],
        max_age=86400,
    )
    app.include_router(voice_router)

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "openai_configured": settings.openai_configured,
            "realtime": True,
            "automation_loaded": app.state.automation.get() is not None,
        }

    @app.websocket("/realtime")
    async def realtime(websocket: WebSocket) -> None:
        session_id = resolve_session_id(
            websocket.query_params.get("sessionId"),
            websocket.headers.get(SESSION_ID_HEADER),
        )
        await websocket.accept()
        logger.info("[Session] Client connected (session=%s)", session_id)

        upstream = UpstreamSession(session_id, websocket.app.state.settings, websocket.app.state.automation)
        gateway = SessionGateway(websocket, upstream, session_id=session_id)
        try:
            await gateway.run()
        finally:
            await gateway.shutdown()

    return app


app = create_app()


def main() -> None:
    settings: Settings = app.state.settings
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="[%(asctime)s] %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
