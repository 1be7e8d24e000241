"""Main entry point for the Travel Advisory Assistant API."""
import logging
import uuid
from datetime import datetime, timezone
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import (
    APP_ENV, CHAT_RATE_LIMIT, CORS_ORIGINS, HISTORY_MAX_TOKENS, HISTORY_TOKEN_COUNTER,
    LOG_FORMAT, LOG_LEVEL, PORT, STORE_BACKEND, THREAD_LOCKING,
)
from logger import setup_logging
from models.api import ChatMessage, ChatRequest, ChatResponse, ClearResponse, HealthResponse, HistoryResponse
from models.conversation import Message
from rate_limiting import limiter
from services.conversation_store import StoreError, create_store
from services.conversation_workflow import ConversationWorkflow
from services.llm_client import LLMClient, LLMClientError
from services.message_trimmer import MessageTrimmer, count_messages, tiktoken_counter

if LOG_FORMAT.lower() == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Travel Advisory Assistant",
    description="Passport and visa advisory chatbot",
    version="1.0.0"
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

# Built once on startup
workflow: ConversationWorkflow = None


def build_workflow() -> ConversationWorkflow:
    """Wire the conversation workflow from configuration."""
    counter = tiktoken_counter() if HISTORY_TOKEN_COUNTER == "tiktoken" else count_messages
    return ConversationWorkflow(
        store=create_store(STORE_BACKEND),
        llm_client=LLMClient(),
        trimmer=MessageTrimmer(max_tokens=HISTORY_MAX_TOKENS, token_counter=counter),
        thread_locking=THREAD_LOCKING
    )


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global workflow

    logger.info("Initializing Travel Advisory Assistant services...")

    try:
        workflow = build_workflow()
        logger.info(
            f"Initialized ConversationWorkflow (store={STORE_BACKEND}, "
            f"history_budget={HISTORY_MAX_TOKENS} {HISTORY_TOKEN_COUNTER}, locking={THREAD_LOCKING})"
        )
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _serialize(message: Message) -> ChatMessage:
    return ChatMessage(role=message.role, content=message.content, timestamp=message.timestamp.isoformat())


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Stamp a request ID and add basic security headers."""
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    return response


@app.exception_handler(LLMClientError)
async def llm_error_handler(request: Request, exc: LLMClientError):
    logger.error(f"LLM client error: {exc.error.message}", extra={"request_id": _request_id(request)})
    return JSONResponse(
        status_code=503,
        content={
            "error": {
                "code": exc.error.code,
                "message": exc.error.message,
                "details": exc.error.details
            },
            "requestId": _request_id(request),
            "timestamp": _now()
        }
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Conversation store error: {exc}", extra={"request_id": _request_id(request)})
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "STORE_ERROR",
                "message": "Conversation storage is unavailable. Please try again later."
            },
            "requestId": _request_id(request),
            "timestamp": _now()
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    content = {"error": exc.detail, "requestId": _request_id(request)}
    if exc.status_code == 404:
        content = {"error": "Not Found", "path": request.url.path, "requestId": _request_id(request)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request body",
            "details": jsonable_errors(exc),
            "requestId": _request_id(request)
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=exc, extra={"request_id": _request_id(request)})
    message = str(exc) if APP_ENV == "development" else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={
            "error": {"code": "INTERNAL_ERROR", "message": message},
            "requestId": _request_id(request),
            "timestamp": _now()
        }
    )


@app.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="OK",
        message="Travel Advisory Assistant API is running",
        timestamp=_now(),
        request_id=_request_id(request)
    )


@app.post("/", response_model=ChatResponse)
@app.post("/api/chat", response_model=ChatResponse)
@limiter.limit(CHAT_RATE_LIMIT)
def chat_endpoint(request: Request, body: ChatRequest) -> ChatResponse:
    """
    Send a message to the travel advisory assistant.

    Args:
        request: Incoming request (rate limiting and request ID)
        body: ChatRequest with message and optional threadId

    Returns:
        ChatResponse with the assistant reply and the thread ID to continue with

    Raises:
        HTTPException: 400 when the message is missing or blank
    """
    request_id = _request_id(request)
    if not body.message or not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    logger.info(f"Processing chat message: {body.message[:100]}...", extra={"request_id": request_id})

    result = workflow.respond(body.message, body.thread_id)

    return ChatResponse(
        response=_serialize(result.reply),
        thread_id=result.thread_id,
        timestamp=result.timestamp.isoformat(),
        request_id=request_id
    )


@app.get("/api/chat/history/{thread_id}", response_model=HistoryResponse)
def history_endpoint(request: Request, thread_id: str) -> HistoryResponse:
    """Return the stored messages for a thread (empty for unknown threads).

    Reads the full checkpoint rather than workflow.history() so the stored
    country and query type can be returned alongside the messages.
    """
    state = workflow.state(thread_id)
    messages = state.messages if state is not None else []

    return HistoryResponse(
        thread_id=thread_id,
        history=[_serialize(message) for message in messages],
        country=state.country if state is not None else None,
        query_type=state.query_type if state is not None else None,
        request_id=_request_id(request)
    )


@app.delete("/api/chat/history/{thread_id}", response_model=ClearResponse)
def clear_history_endpoint(request: Request, thread_id: str) -> ClearResponse:
    """Clear the stored messages for a thread."""
    workflow.clear(thread_id)

    return ClearResponse(
        message="Conversation history cleared",
        thread_id=thread_id,
        request_id=_request_id(request)
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Travel Advisory Assistant API on port {PORT}")
    if APP_ENV == "development":
        logger.info("Available endpoints: POST /api/chat, GET /api/chat/history/{threadId}, DELETE /api/chat/history/{threadId}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
