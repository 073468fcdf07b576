import time

from fastapi import HTTPException

from scripture_rag.chat_messages import normalize_messages, split_last_user_turn
from scripture_rag.completion import CompletionProvider
from scripture_rag.errors import CompletionUnavailable, ConfigurationError, RateLimited, RetrievalUnavailable
from scripture_rag.logging_config import get_logger
from scripture_rag.models import ChatRequest, ChatResponse
from scripture_rag.prompts import build_context_prompt
from scripture_rag.retrieval import ContextRetriever

logger = get_logger(__name__)


def answer_chat(
    body: ChatRequest,
    retriever: ContextRetriever,
    completion: CompletionProvider,
    default_translation: str = "WEB",
) -> ChatResponse:
    """
    Answer the last user message grounded on retrieved verses.

    The last user turn is the query; earlier turns are passed to the model
    as history after the grounded system prompt.
    """
    credential = body.custom_api_key or None
    if not completion.is_configured(credential):
        raise HTTPException(
            status_code=400,
            detail="Groq API key is missing. Set GROQ_API_KEY or provide a custom API key.",
        )

    history, last_user = split_last_user_turn(normalize_messages(body.messages))
    if last_user is None:
        raise HTTPException(status_code=400, detail="Missing user query")

    translation = body.translation or default_translation
    query = last_user.text

    t0 = time.time()
    try:
        verses = retriever.retrieve(query, translation, credential=credential)
    except RetrievalUnavailable as e:
        raise HTTPException(
            status_code=503,
            detail="Scripture sources are temporarily unavailable. Please try again later.",
        ) from e
    retrieval_ms = int((time.time() - t0) * 1000)

    messages = [
        {"role": "system", "content": build_context_prompt(query, verses, translation)},
        *(turn.as_message() for turn in history),
        {"role": "user", "content": query},
    ]

    try:
        result = completion.complete(messages, credential=credential)
    except RateLimited as e:
        raise HTTPException(status_code=429, detail=str(e)) from e
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except CompletionUnavailable as e:
        raise HTTPException(
            status_code=502,
            detail="The answer service is temporarily unavailable. Please try again later.",
        ) from e

    logger.info(
        f"chat answered | model={result.model} | history={len(history)} | verses={len(verses)} | "
        f"retrieval_ms={retrieval_ms} | total_ms={int((time.time() - t0) * 1000)}"
    )
    return ChatResponse(answer=result.text, model=result.model, verses=verses)
