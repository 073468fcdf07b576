"""
Text generation through Groq's OpenAI-compatible API.

Two uses:
- complete(): the grounded chat answer, over the chat model list (or the
  custom-key list when the caller brings their own key);
- suggest_references(): up to 3 "BOOK CH:VS" references for queries the
  API retrieval path could not resolve directly.

Models are tried in order. Any provider error except an authentication
failure moves on to the next model.
"""
import json
from dataclasses import dataclass
from typing import Callable

import openai
from openai import OpenAI

from scripture_rag.config import settings
from scripture_rag.errors import CompletionUnavailable, ConfigurationError, RateLimited
from scripture_rag.logging_config import get_logger
from scripture_rag.references import ParsedReference, parse_code_lines
from scripture_rag.strategies import Exhausted, Strategy, run_strategies

logger = get_logger(__name__)

SUGGESTION_PROMPT = (
    "Return up to 3 Bible references as lines in the format BOOK CH:VS (e.g., GEN 1:1). "
    "Use 3-letter book codes. If none apply, return NONE."
)

MAX_SUGGESTIONS = 3


def is_transient_provider_error(e: Exception) -> bool:
    return isinstance(e, openai.APIError) and not isinstance(e, openai.AuthenticationError)


@dataclass
class CompletionResult:
    text: str
    model: str


class CompletionProvider:
    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = "https://api.groq.com/openai/v1",
        chat_models: list[str] | None = None,
        custom_key_chat_models: list[str] | None = None,
        suggestion_models: list[str] | None = None,
        temperature: float = 0.1,
        timeout: float = 30.0,
        client_factory: Callable[..., OpenAI] = OpenAI,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.chat_models = list(chat_models or [])
        self.custom_key_chat_models = list(custom_key_chat_models or self.chat_models)
        self.suggestion_models = list(suggestion_models or self.chat_models)
        self.temperature = temperature
        self.timeout = timeout
        self.client_factory = client_factory

    @classmethod
    def from_settings(cls) -> "CompletionProvider":
        return cls(
            settings.groq_api_key,
            base_url=settings.groq_base_url,
            chat_models=settings.chat_models,
            custom_key_chat_models=settings.custom_key_chat_models,
            suggestion_models=settings.suggestion_models,
            temperature=settings.completion_temperature,
            timeout=settings.completion_timeout,
        )

    def is_configured(self, credential: str | None = None) -> bool:
        return bool(credential or self.api_key)

    def _client(self, credential: str | None) -> OpenAI:
        api_key = credential or self.api_key
        if not api_key:
            raise ConfigurationError(
                "Groq API key is missing. Set GROQ_API_KEY or provide a custom API key."
            )
        return self.client_factory(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    def _create(self, client: OpenAI, model: str, messages: list[dict]) -> CompletionResult:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=self.temperature,
        )
        return CompletionResult(text=response.choices[0].message.content or "", model=model)

    def _run(self, models: list[str], messages: list[dict], credential: str | None, label: str) -> CompletionResult:
        client = self._client(credential)
        strategies = [
            Strategy(name=model, run=lambda model=model: self._create(client, model, messages))
            for model in models
        ]
        try:
            outcome = run_strategies(strategies, is_transient_provider_error, label=label)
        except openai.AuthenticationError as e:
            raise ConfigurationError("Completion provider rejected the API key") from e

        if isinstance(outcome, Exhausted):
            if any(isinstance(f.error, openai.RateLimitError) for f in outcome.failures):
                raise RateLimited(
                    "Rate limit exceeded. The free tier API is currently overloaded. "
                    "Please wait a moment or provide your own Groq API key in the settings."
                ) from outcome.last_error
            raise CompletionUnavailable(
                f"All completion models failed ({len(outcome.failures)} tried)"
            ) from outcome.last_error

        return outcome.value

    def complete(self, messages: list[dict], credential: str | None = None) -> CompletionResult:
        """
        Answer a chat conversation.

        Raises:
            ConfigurationError: no API key, or the key was rejected.
            RateLimited: every model failed and at least one was throttled.
            CompletionUnavailable: every model failed otherwise.
        """
        models = self.custom_key_chat_models if credential else self.chat_models
        result = self._run(models, messages, credential, label="chat completion")
        logger.info(f"chat completion | model={result.model} | chars={len(result.text)}")
        return result

    def suggest_references(
        self,
        query: str,
        hints: list[str] | None = None,
        credential: str | None = None,
    ) -> list[ParsedReference]:
        """Ask the model for up to 3 references; malformed lines are ignored."""
        prompt = SUGGESTION_PROMPT + "".join(f" {hint}" for hint in hints or []) + "\nQuery: " + json.dumps(query)
        result = self._run(
            self.suggestion_models,
            [{"role": "user", "content": prompt}],
            credential,
            label="reference suggestion",
        )
        refs = parse_code_lines(result.text)[:MAX_SUGGESTIONS]
        logger.info(f"reference suggestion | model={result.model} | refs={len(refs)}")
        return refs
