from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any

import httpx

from restyle.config.schema import InterpreterSettings
from restyle.core.exceptions import (
    InterpreterError,
    NetworkError,
    OperationTimeoutError,
    PermissionDeniedError,
    SerializationError,
)
from restyle.llm.prompts import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429})


class InterpreterClient(ABC):
    """Provider-neutral interface turning a command into a raw mutation reply."""

    provider_name = "unknown"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        settings: InterpreterSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.settings = settings or InterpreterSettings(provider=self.provider_name)
        self.model = model or self.settings.model or self.default_model()
        self.transport = transport

    @abstractmethod
    def default_model(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def interpret(self, command: str, elements: list[dict[str, Any]]) -> str:
        raise NotImplementedError

    async def _post_json(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        timeout = self.settings.timeout_seconds
        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
            except httpx.TimeoutException as exc:
                logger.error("%s: request timed out after %ss", self.provider_name, timeout)
                raise OperationTimeoutError(f"Interpreter request timed out after {timeout}s") from exc
            except httpx.TransportError as exc:
                logger.error("%s: transport failure: %s", self.provider_name, exc)
                raise NetworkError(f"Interpreter network error: {exc}") from exc

        status = response.status_code
        if status in {401, 403}:
            raise PermissionDeniedError(f"Interpreter rejected the credentials (HTTP {status})")
        if status in RETRYABLE_STATUSES or status >= 500:
            raise NetworkError(f"Interpreter service unavailable (HTTP {status}): {response.text[:200]}")
        if status >= 400:
            raise InterpreterError(f"Interpreter request failed with status {status}: {response.text[:200]}")
        try:
            return response.json()
        except ValueError as exc:
            raise SerializationError("Interpreter returned a body that is not JSON") from exc


class OpenAIInterpreterClient(InterpreterClient):
    provider_name = "openai"
    endpoint = "https://api.openai.com/v1/chat/completions"

    def default_model(self) -> str:
        return os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    async def interpret(self, command: str, elements: list[dict[str, Any]]) -> str:
        body = {
            "model": self.model,
            "temperature": 0,
            "max_tokens": self.settings.max_tokens,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(command, elements)},
            ],
        }
        response = await self._post_json(
            self.endpoint,
            body,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            return response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise InterpreterError("OpenAI returned an unexpected response shape") from exc


class AnthropicInterpreterClient(InterpreterClient):
    provider_name = "anthropic"
    endpoint = "https://api.anthropic.com/v1/messages"

    def default_model(self) -> str:
        return os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-latest")

    async def interpret(self, command: str, elements: list[dict[str, Any]]) -> str:
        body = {
            "model": self.model,
            "max_tokens": self.settings.max_tokens,
            "temperature": 0,
            "system": SYSTEM_PROMPT,
            "messages": [
                {"role": "user", "content": build_user_prompt(command, elements)},
            ],
        }
        response = await self._post_json(
            self.endpoint,
            body,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
        )
        blocks = response.get("content") or []
        text = "".join(block.get("text", "") for block in blocks if isinstance(block, dict))
        if not text:
            raise InterpreterError("Anthropic returned an empty response")
        return text


class GeminiInterpreterClient(InterpreterClient):
    provider_name = "gemini"
    endpoint_template = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def default_model(self) -> str:
        return os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    async def interpret(self, command: str, elements: list[dict[str, Any]]) -> str:
        body = {
            "system_instruction": {
                "parts": [
                    {"text": SYSTEM_PROMPT},
                ]
            },
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": build_user_prompt(command, elements)},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": 0,
                "maxOutputTokens": self.settings.max_tokens,
                "responseMimeType": "application/json",
            },
        }
        response = await self._post_json(
            self.endpoint_template.format(model=self.model),
            body,
            headers={
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            },
        )
        candidates = response.get("candidates", [])
        if not candidates:
            raise InterpreterError("Gemini returned no candidates")
        parts = candidates[0].get("content", {}).get("parts", [])
        content = "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
        if not content:
            raise InterpreterError("Gemini returned an empty response")
        return content


PROVIDERS: dict[str, tuple[type[InterpreterClient], str]] = {
    "openai": (OpenAIInterpreterClient, "OPENAI_API_KEY"),
    "anthropic": (AnthropicInterpreterClient, "ANTHROPIC_API_KEY"),
    "gemini": (GeminiInterpreterClient, "GEMINI_API_KEY"),
}


def create_interpreter_client(settings: InterpreterSettings | None = None) -> InterpreterClient:
    provider = os.getenv("LLM_PROVIDER", settings.provider if settings else "openai").lower()
    if provider not in PROVIDERS:
        raise RuntimeError(f"Unsupported LLM provider: {provider}")
    client_class, key_name = PROVIDERS[provider]
    api_key = os.getenv(key_name)
    if not api_key:
        raise RuntimeError(f"{key_name} is required when LLM_PROVIDER={provider}")
    if settings is None or settings.provider != provider:
        settings = InterpreterSettings(provider=provider, **(settings.model_dump(exclude={"provider"}) if settings else {}))
    return client_class(api_key, settings=settings)
