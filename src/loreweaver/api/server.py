"""
loreweaver FastAPI server.

Endpoints:
- GET  /health       - Liveness plus backend availability
- POST /context      - Assemble prompt context
- POST /lore/query   - Answer a lore question
- POST /chat         - Lore answer or Game Master continuation
- POST /chat/stream  - Same, as server-sent events
- POST /analysis     - Full story analysis
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from ..config import Settings
from ..engine import NarrativeEngine
from ..errors import BackendTransportError
from .schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ChatRequest,
    ChatResponse,
    ContextQueryRequest,
    ContextResponse,
    ErrorResponse,
    LoreQueryRequest,
    LoreQueryResponse,
)


logger = logging.getLogger(__name__)

RETRY_MESSAGE = "The narrative backend is unavailable, please try again."


def sse_frame(data: dict | str) -> str:
    """One server-sent event data frame."""
    if not isinstance(data, str):
        data = json.dumps(data)
    return f"data: {data}\n\n"


async def stream_frames(chunks: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Wrap content chunks as SSE frames ending in [DONE].

    A transport failure mid-stream becomes an error frame; [DONE] still
    follows so clients always see the end of the stream.
    """
    try:
        async for chunk in chunks:
            yield sse_frame({"content": chunk})
    except BackendTransportError as e:
        logger.error(f"Streaming chat failed: {e}")
        yield sse_frame({"error": RETRY_MESSAGE})
    yield sse_frame("[DONE]")


def create_app(
    settings: Settings | None = None,
    engine: NarrativeEngine | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Process settings (defaults from environment)
        engine: Prebuilt engine; one is built from settings if omitted
    """
    settings = settings or Settings.from_env()
    engine = engine or NarrativeEngine.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        await engine.start()
        yield
        await engine.aclose()

    app = FastAPI(
        title="loreweaver API",
        description="Context assembly, lore answers and narrative generation",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store engine for dependency injection
    app.state.engine = engine

    def get_engine() -> NarrativeEngine:
        return app.state.engine

    @app.exception_handler(BackendTransportError)
    async def backend_unavailable(request: Request, exc: BackendTransportError):
        logger.error(f"{request.url.path} failed: {exc}")
        body = ErrorResponse(error=RETRY_MESSAGE, code="backend_unavailable")
        return JSONResponse(status_code=502, content=body.model_dump())

    # -------------------------------------------------------------------------
    # REST Endpoints
    # -------------------------------------------------------------------------

    @app.get("/health")
    async def health_check(engine: NarrativeEngine = Depends(get_engine)):
        """Health check endpoint."""
        return {
            "ok": True,
            "service": "loreweaver",
            "backend_available": getattr(engine.client, "is_available", False),
            "model": engine.client.model_name,
        }

    @app.post("/context", response_model=ContextResponse)
    async def assemble_context(
        request: ContextQueryRequest,
        engine: NarrativeEngine = Depends(get_engine),
    ):
        """Assemble context; per-type failures are reported, not raised."""
        assembled = await engine.assembler.assemble(request)
        return ContextResponse(
            context=assembled.text,
            failures=assembled.failures,
            skipped=assembled.skipped,
            remaining_tokens=assembled.remaining_tokens,
        )

    @app.post("/lore/query", response_model=LoreQueryResponse)
    async def lore_query(
        request: LoreQueryRequest,
        engine: NarrativeEngine = Depends(get_engine),
    ):
        answer = await engine.lore.process_lore_query(request.query, request.session_id)
        return LoreQueryResponse(is_lore_query=bool(answer), response=answer)

    @app.post("/chat", response_model=ChatResponse)
    async def chat(
        request: ChatRequest,
        engine: NarrativeEngine = Depends(get_engine),
    ):
        reply = await engine.respond(request.message, request.session_id, request.include_ids)
        return ChatResponse(
            response=reply.response,
            response_type=reply.response_type,
            context_length=reply.context_length,
        )

    @app.post("/chat/stream")
    async def chat_stream(
        request: ChatRequest,
        engine: NarrativeEngine = Depends(get_engine),
    ):
        """Stream the reply as `data: {"content": ...}` frames."""
        chunks = engine.stream_response(request.message, request.session_id)
        return StreamingResponse(
            stream_frames(chunks),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    @app.post("/analysis", response_model=AnalysisResponse)
    async def analyze(
        request: AnalysisRequest,
        engine: NarrativeEngine = Depends(get_engine),
    ):
        """Run every analysis axis; failed axes come back as defaults."""
        bundle = await engine.analyzer.analyze_story(request.text, request.session_id)
        return AnalysisResponse(analysis=bundle)

    return app
