"""Async OpenAI chat client for the audit pass."""

import logging
import threading
from typing import Any, Dict, List, Optional, cast

import httpx
import openai
from openai import AsyncOpenAI

from ..exceptions import (
    APIConnectionError,
    APIError,
    APIRateLimitError,
    APIResponseError,
    APITimeoutError,
    ConfigurationError,
)
from ..services import IGenerativeTextClient, IResponseParser
from .utility_services import ResponseParser


class OpenAIChatClient(IGenerativeTextClient):
    """OpenAI chat-completions client with a pooled HTTP/2 connection."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        response_parser: Optional[IResponseParser] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY must be provided in config or environment")
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._parser = response_parser or ResponseParser()
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._client: Optional[AsyncOpenAI] = None
        self._http_client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> AsyncOpenAI:
        """Lazily create and cache the OpenAI client."""
        with self._lock:
            if self._client is None:
                self._http_client = httpx.AsyncClient(http2=True, timeout=httpx.Timeout(self._timeout, connect=10))
                self._client = AsyncOpenAI(
                    api_key=self._api_key,
                    base_url=self._base_url,
                    http_client=self._http_client,
                    max_retries=self._max_retries,
                )
                self._logger.debug("Initialized OpenAI client with persistent HTTP/2 connection pool.")
            return self._client

    async def complete(
        self,
        *,
        model: str,
        system: str,
        messages: List[Dict[str, str]],
        json: bool = False,
        temperature: float = 0.0,
        top_p: float = 1.0,
        max_output_tokens: int = 600,
    ) -> str:
        """Execute a chat completion and return its text."""
        client = self._ensure_client()
        full_messages: List[Dict[str, str]] = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(messages)

        request: Dict[str, Any] = {
            "model": model,
            "messages": full_messages,
            "temperature": temperature,
            "top_p": top_p,
            "max_tokens": max_output_tokens,
        }
        if json:
            request["response_format"] = {"type": "json_object"}

        self._logger.debug(
            "POST chat/completions model=%s messages=%d max_tokens=%d temperature=%.2f json=%s",
            model,
            len(full_messages),
            max_output_tokens,
            temperature,
            json,
        )

        try:
            client_any = cast(Any, client)
            raw_response = await client_any.chat.completions.with_raw_response.create(**request)
        except openai.APITimeoutError as exc:
            raise APITimeoutError("Generative request timed out", {"model": model}) from exc
        except openai.APIConnectionError as exc:
            raise APIConnectionError("Unable to reach generative service", {"model": model}) from exc
        except openai.RateLimitError as exc:
            retry_after = exc.response.headers.get("retry-after")
            raise APIRateLimitError(
                "Generative service rate limit exceeded",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                context={"model": model},
            ) from exc
        except openai.APIStatusError as exc:
            raise APIResponseError(
                "Generative service returned an error",
                status_code=exc.status_code,
                response_body=exc.response.text,
                context={"model": model},
            ) from exc
        except openai.OpenAIError as exc:
            self._logger.error("API request failed: %s", exc, exc_info=True)
            raise APIError("Generative request failed", {"model": model}) from exc

        completion = raw_response.parse()
        payload = completion.model_dump()

        http_response = raw_response.http_response
        elapsed = http_response.elapsed.total_seconds() if http_response.elapsed else None
        self._logger.debug(
            "Received response status=%s latency=%s model=%s",
            http_response.status_code,
            f"{elapsed:.3f}s" if elapsed is not None else "unknown",
            model,
        )
        usage = self._parser.extract_usage(payload)
        if usage:
            self._logger.debug("Token usage model=%s %s", model, " ".join(f"{k}={v}" for k, v in usage.items()))
        if self._parser.extract_finish_reason(payload) == "length":
            self._logger.warning("Completion truncated at max_tokens=%d model=%s", max_output_tokens, model)

        text = self._parser.extract_text(payload)
        refusal = self._parser.extract_refusal(payload)
        if refusal and not text:
            raise APIResponseError(
                "Generative service refused the request",
                status_code=http_response.status_code,
                response_body=refusal,
                context={"model": model},
            )
        return text

    async def aclose(self) -> None:
        """Close connections and cleanup resources."""
        with self._lock:
            http_client = self._http_client
            self._http_client = None
            self._client = None
        if http_client is not None:
            await http_client.aclose()
            self._logger.debug("Closed OpenAI client connections")


__all__ = ["OpenAIChatClient"]
