import os
import json
import time
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST, REGISTRY

from config import UTC
from config.settings import settings
from models import ChatRequest, ChatResponse, StreamChunk
from agent import TravelAgent
from llm.azure_openai import CompletionProvider
from memory.session_registry import SessionRegistry


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "msg": record.getMessage(),
            "logger": record.name,
        }
        if hasattr(record, "extra_data"):
            base.update(getattr(record, "extra_data"))
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base)


handler = logging.StreamHandler()
if settings.logging.json_logging:
    handler.setFormatter(JsonFormatter())
logger = logging.getLogger("app")
logger.setLevel(settings.logging.level)
logger.addHandler(handler)
logger.propagate = False

REQUEST_COUNTER: Optional[Counter] = None
REQUEST_LATENCY: Optional[Histogram] = None


def init_metrics(registry=REGISTRY) -> None:
    global REQUEST_COUNTER, REQUEST_LATENCY
    if REQUEST_COUNTER is None:
        REQUEST_COUNTER = Counter(
            "chat_requests_total",
            "Total chat requests",
            ["endpoint", "status"],
            registry=registry,
        )
    if REQUEST_LATENCY is None:
        REQUEST_LATENCY = Histogram(
            "chat_request_seconds",
            "Latency of chat requests in seconds",
            ["endpoint"],
            registry=registry,
        )


STREAM_PATH = "/api/chat/stream"
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}
GENERIC_ERROR = "An error occurred while processing your request."

registry = SessionRegistry()
provider = CompletionProvider()
travel_agent = TravelAgent(provider)


def get_registry() -> SessionRegistry:
    return registry


def get_provider() -> CompletionProvider:
    return provider


def get_agent() -> TravelAgent:
    return travel_agent


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_metrics()
    logger.info("Starting travel agent service")
    await registry.start()
    yield
    await registry.stop()
    await travel_agent.aclose()
    await provider.aclose()


app = FastAPI(title="Travel Agent Chat Service", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def sse_line(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def error_line(message: str, session_id: Optional[str] = None) -> str:
    payload = {"error": message, "is_complete": True, "requires_input": False}
    if session_id:
        payload["session_id"] = session_id
    return sse_line(payload)


def _record(endpoint: str, status: int, start: float) -> None:
    init_metrics()
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    detail = detail.removeprefix("Value error, ")
    logger.info(f"Rejected request: {detail}", extra={"extra_data": {"path": request.url.path}})
    if request.url.path == STREAM_PATH:
        _record("stream", 400, time.time())
        return PlainTextResponse(error_line(detail), status_code=400, headers=STREAM_HEADERS)
    _record("message", 400, time.time())
    return JSONResponse(status_code=400, content={"error": detail})


@app.get("/health")
def health():
    return {"status": "healthy", "service": settings.service_name, "timestamp": datetime.now(UTC).isoformat()}


@app.get("/health/detailed")
def health_detailed(provider: CompletionProvider = Depends(get_provider)):
    try:
        configured, error = True, ""
        try:
            provider.resolve()
        except Exception as e:
            logger.warning(f"AI service not configured: {e}")
            configured, error = False, "Configuration error"
        return {
            "status": "healthy" if configured else "degraded",
            "service": settings.service_name,
            "aiService": {"configured": configured, "error": error},
            "timestamp": datetime.now(UTC).isoformat(),
        }
    except Exception:
        logger.exception("Detailed health check failed")
        return JSONResponse(status_code=500, content={
            "status": "unhealthy",
            "service": settings.service_name,
            "error": "Health check failed",
            "timestamp": datetime.now(UTC).isoformat(),
        })


@app.get("/agent-card")
def agent_card():
    return {
        "name": "Travel Agent",
        "description": "Travel agent providing trip planning and currency exchange assistance",
        "version": "1.0.0",
        "capabilities": {"streaming": True},
        "status": "ready",
    }


@app.get("/metrics")
def metrics():
    init_metrics()
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/api/chat/message", response_model=ChatResponse)
async def send_message(
    req: ChatRequest,
    registry: SessionRegistry = Depends(get_registry),
    agent: TravelAgent = Depends(get_agent),
):
    request_id = str(uuid.uuid4())
    start = time.time()
    session_id = req.session_id
    try:
        session_id = registry.touch(req.session_id)
        resp = await agent.invoke(req.message, session_id)
        _record("message", 200, start)
        logger.info(
            "Handled chat",
            extra={"extra_data": {"request_id": request_id, "session_id": session_id, "type": resp.type}}
        )
        return ChatResponse(
            response=resp.content,
            session_id=session_id,
            is_complete=resp.is_task_complete,
            requires_input=resp.requires_user_input,
        )
    except Exception:
        _record("message", 500, start)
        logger.exception("Chat error", extra={"extra_data": {"request_id": request_id, "session_id": session_id}})
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR})


async def _stream_reply(agent: TravelAgent, message: str, session_id: str, request_id: str) -> AsyncIterator[str]:
    start = time.time()
    status = 200
    try:
        async for partial in agent.stream(message, session_id):
            chunk = StreamChunk(
                content=partial.content,
                session_id=session_id,
                is_complete=partial.is_task_complete,
                requires_input=partial.requires_user_input,
            )
            yield sse_line(chunk.model_dump())
            if partial.is_task_complete:
                return
        # no complete chunk from the agent
        logger.warning("Agent stream ended without a final chunk",
                       extra={"extra_data": {"request_id": request_id, "session_id": session_id}})
        status = 500
        yield error_line(GENERIC_ERROR, session_id)
    except Exception:
        status = 500
        logger.exception("Streaming error", extra={"extra_data": {"request_id": request_id, "session_id": session_id}})
        yield error_line(GENERIC_ERROR, session_id)
    finally:
        _record("stream", status, start)


@app.post(STREAM_PATH)
async def stream_message(
    req: ChatRequest,
    registry: SessionRegistry = Depends(get_registry),
    agent: TravelAgent = Depends(get_agent),
):
    request_id = str(uuid.uuid4())
    try:
        session_id = registry.touch(req.session_id)
    except Exception:
        logger.exception("Error setting up streaming", extra={"extra_data": {"request_id": request_id}})
        return PlainTextResponse(error_line(GENERIC_ERROR), status_code=500, headers=STREAM_HEADERS)
    return StreamingResponse(
        _stream_reply(agent, req.message, session_id, request_id),
        media_type="text/plain",
        headers=STREAM_HEADERS,
    )


@app.get("/api/chat/sessions")
def list_sessions(registry: SessionRegistry = Depends(get_registry)):
    sessions = registry.ids()
    return {"sessions": sessions, "count": len(sessions)}


@app.delete("/api/chat/sessions/{session_id}")
def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if registry.remove(session_id):
        logger.info("Deleted session", extra={"extra_data": {"session_id": session_id}})
        return {"message": "Session deleted successfully", "sessionId": session_id}
    return JSONResponse(status_code=404, content={"error": "Session not found", "sessionId": session_id})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host=settings.host, port=int(os.getenv("PORT", settings.port)))
