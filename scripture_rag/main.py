import logging
import os
import time
from functools import lru_cache

import sentry_sdk
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from scripture_rag.chat_service import answer_chat
from scripture_rag.completion import CompletionProvider
from scripture_rag.config import settings
from scripture_rag.errors import RetrievalUnavailable
from scripture_rag.logging_config import get_logger, setup_logging
from scripture_rag.logging_utils import new_request_id, request_id_ctx
from scripture_rag.models import ChatRequest, ChatResponse, ContextRequest, ContextResponse, TranslationInfo
from scripture_rag.retrieval import ContextRetriever

logger = get_logger(__name__)


# ============== Rate Limiting ==============

limiter = Limiter(key_func=get_remote_address)


# ============== Dependencies ==============

@lru_cache(maxsize=1)
def get_retriever() -> ContextRetriever:
    return ContextRetriever.from_settings()


@lru_cache(maxsize=1)
def get_completion() -> CompletionProvider:
    return CompletionProvider.from_settings()


app = FastAPI(title="scripture_rag API")
setup_logging(settings.log_level)


def _sentry_before_send(event, hint):
    req = event.get("request") or {}
    # Remove request body & cookies (bodies may carry a custom API key)
    req.pop("data", None)
    req.pop("cookies", None)
    headers = req.get("headers") or {}
    headers.pop("authorization", None)
    req["headers"] = headers
    event["request"] = req
    return event


sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FastApiIntegration()],
        environment=os.getenv("SENTRY_ENVIRONMENT", "dev"),
        send_default_pii=False,
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0") or "0"),
        before_send=_sentry_before_send,
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or new_request_id()
    token = request_id_ctx.set(rid)

    start = time.time()
    try:
        response = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)

        response.headers["X-Request-ID"] = rid

        logging.getLogger("scripture_rag.request").info(
            "%s %s -> %s (%dms)",
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            duration_ms,
        )
        return response
    finally:
        request_id_ctx.reset(token)


# ============== Middleware ==============

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

logger.info(f"CORS enabled for origins: {settings.cors_origins}")


# ============== Endpoints ==============

@app.get("/")
def root():
    return {"message": "scripture_rag API is running. POST to /chat or /context."}


@app.get("/health")
def health():
    """Liveness plus which optional backends are configured."""
    return {
        "status": "ok",
        "database": bool(settings.database_url),
        "cache": bool(settings.redis_url),
        "embeddings": bool(settings.hf_token),
        "completion": bool(settings.groq_api_key),
    }


@app.get("/translations", response_model=list[TranslationInfo])
def list_translations(retriever: ContextRetriever = Depends(get_retriever)):
    """Available translations, or WEB / KJV when the catalogue is unreachable."""
    return [TranslationInfo(**t) for t in retriever.api.list_translations()]


@app.post("/context", response_model=ContextResponse)
@limiter.limit(settings.rate_limit_context)
def context(
    request: Request,
    body: ContextRequest,
    retriever: ContextRetriever = Depends(get_retriever),
):
    """Retrieve the ordered verse context for a query. Rate limited."""
    try:
        verses = retriever.retrieve(body.query, body.translation, credential=body.custom_api_key)
    except RetrievalUnavailable as e:
        raise HTTPException(
            status_code=503,
            detail="Scripture sources are temporarily unavailable. Please try again later.",
        ) from e
    return ContextResponse(query=body.query, translation=body.translation, verses=verses)


@app.post("/chat", response_model=ChatResponse)
@limiter.limit(settings.rate_limit_chat)
def chat(
    request: Request,
    body: ChatRequest,
    retriever: ContextRetriever = Depends(get_retriever),
    completion: CompletionProvider = Depends(get_completion),
):
    """Answer the conversation's last user message from retrieved verses. Rate limited."""
    return answer_chat(body, retriever, completion, default_translation=settings.default_translation)
