"""Thin text-generation client wrappers used by the segment analyzer.

Both providers expose the same coroutine, ``invoke(system_prompt=..., user_prompt=...)``,
returning the aggregate text output or ``None`` when the model produced nothing.
Clients are built explicitly from configuration and handed to the analyzer;
there is no process-wide model singleton.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from moodreel.config.settings import BedrockConfig, GeminiConfig, Settings

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when the text-generation call fails at the transport level."""


class TextGenerationClient(Protocol):
    async def invoke(self, *, system_prompt: str, user_prompt: str) -> str | None:
        ...


class GeminiLlmClient:
    """Call the Generative Language REST API (``models/{model}:generateContent``)."""

    def __init__(
        self,
        config: GeminiConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._http_client = http_client

    def _endpoint(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/{self._config.model}:generateContent"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["x-goog-api-key"] = self._config.api_key.get_secret_value()
        return headers

    async def invoke(self, *, system_prompt: str, user_prompt: str) -> str | None:
        """Run one ``generateContent`` call and join the text parts of the first candidate."""

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {"temperature": self._config.temperature},
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self._endpoint(),
                    json=body,
                    headers=self._headers(),
                    timeout=self._config.timeout,
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self._endpoint(),
                        json=body,
                        headers=self._headers(),
                        timeout=self._config.timeout,
                    )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise LlmInvocationError(
                f"Gemini returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LlmInvocationError(str(exc)) from exc

        return _candidate_text(payload)


def _candidate_text(payload: Any) -> str | None:
    """Join the text parts of the first candidate, rejecting replies of the wrong shape."""

    if not isinstance(payload, dict):
        raise LlmInvocationError(f"Gemini reply is not a JSON object: {type(payload).__name__}")
    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list):
        raise LlmInvocationError("Gemini reply has a malformed 'candidates' field")
    if not candidates:
        return None
    if not isinstance(candidates[0], dict):
        raise LlmInvocationError("Gemini candidate is not a JSON object")
    content = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        raise LlmInvocationError("Gemini candidate content is not a JSON object")
    parts = content.get("parts") or []
    if not isinstance(parts, list) or not all(isinstance(part, dict) for part in parts):
        raise LlmInvocationError("Gemini candidate has malformed content parts")
    texts = [str(part["text"]) for part in parts if part.get("text")]
    return "\n".join(texts).strip() or None


def _create_bedrock_runtime(config: BedrockConfig) -> Any:
    """Build the runtime client, using explicit credentials only when both halves are set."""

    client_kwargs: dict[str, Any] = {"region_name": config.region}
    if config.access_key and config.secret_key:
        client_kwargs["aws_access_key_id"] = config.access_key
        client_kwargs["aws_secret_access_key"] = config.secret_key.get_secret_value()
    return boto3.client("bedrock-runtime", **client_kwargs)


class BedrockLlmClient:
    """Invoke Amazon Bedrock models with standard configuration."""

    def __init__(self, config: BedrockConfig, *, client: Any | None = None) -> None:
        self._config = config
        if client is not None:
            self._client = client
            return
        try:
            self._client = _create_bedrock_runtime(config)
        except BotoCoreError as exc:  # pragma: no cover - configuration issue
            logger.warning("Bedrock client could not be initialised: %s", exc)
            self._client = None

    async def invoke(self, *, system_prompt: str, user_prompt: str) -> str | None:
        """Run a Bedrock `converse` call and return the aggregate text output."""

        if not self._client or not self._config.model_id:
            raise LlmInvocationError("Bedrock client is not configured.")

        inference_cfg = {
            "maxTokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "topP": self._config.top_p,
        }

        def _call() -> str:
            response = self._client.converse(
                modelId=self._config.model_id,
                system=[{"text": system_prompt}],
                messages=[{"role": "user", "content": [{"text": user_prompt}]}],
                inferenceConfig=inference_cfg,
            )
            content_blocks = (
                response.get("output", {})
                .get("message", {})
                .get("content", [])
            )
            texts = [block.get("text", "") for block in content_blocks if block.get("text")]
            return "\n".join(texts).strip()

        try:
            result = await run_in_threadpool(_call)
        except (BotoCoreError, ClientError) as exc:  # pragma: no cover - external dependency
            raise LlmInvocationError(str(exc)) from exc

        return result or None


def create_llm_client(
    app_settings: Settings,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> TextGenerationClient:
    """Build the provider selected by ``LLM_PROVIDER``."""

    if app_settings.llm_provider == "bedrock":
        return BedrockLlmClient(app_settings.bedrock)
    return GeminiLlmClient(app_settings.gemini, http_client=http_client)


__all__ = [
    "BedrockLlmClient",
    "GeminiLlmClient",
    "LlmInvocationError",
    "TextGenerationClient",
    "create_llm_client",
]
