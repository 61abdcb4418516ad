from __future__ import annotations
from typing import Dict, Any, Optional, List
import time
import logging

from openai import AsyncOpenAI
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    BadRequestError,
    RateLimitError,
)

from .base import (
    ModelProvider, ChatRequest, ModelResponse, ImagePart,
    UpstreamAuthError, UpstreamBadRequestError, UpstreamGenericError,
    UpstreamRateLimitError, UpstreamTimeoutError,
)
from ...utils.image_converter import to_data_uri

logger = logging.getLogger(__name__)


def _upstream_message(exc: APIStatusError) -> str:
    """Prefer the API's own error.message from the response body."""
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return exc.message or "Error desconocido"


def map_openai_error(exc: Exception):
    """Translate an openai SDK exception into the upstream error taxonomy."""
    # APITimeoutError subclasses APIConnectionError, so it must be checked first
    if isinstance(exc, APITimeoutError):
        return UpstreamTimeoutError("Timeout: La petición tardó demasiado")
    if isinstance(exc, AuthenticationError):
        return UpstreamAuthError("API key de OpenAI inválida o no configurada",
                                 status_code=exc.status_code, upstream_message=_upstream_message(exc))
    if isinstance(exc, RateLimitError):
        return UpstreamRateLimitError("Límite de API excedido. Intenta nuevamente en unos minutos",
                                      status_code=exc.status_code, upstream_message=_upstream_message(exc))
    if isinstance(exc, BadRequestError):
        return UpstreamBadRequestError("Imagen no válida o demasiado grande",
                                       status_code=exc.status_code, upstream_message=_upstream_message(exc))
    if isinstance(exc, APIStatusError):
        message = _upstream_message(exc)
        return UpstreamGenericError(f"Error de OpenAI: {message}",
                                    status_code=exc.status_code, upstream_message=message)
    if isinstance(exc, APIConnectionError):
        return UpstreamGenericError(f"Error de conexión con OpenAI: {exc}")
    return UpstreamGenericError(f"OpenAI provider error: {exc}")


class OpenAIProvider(ModelProvider):
    """
    Chat Completions provider over the async OpenAI client.

    Every call is a single attempt: the SDK's built-in retries are disabled
    and failures are surfaced to the caller immediately.
    """

    def __init__(self, api_key: str, base_url: Optional[str] = None, default_headers: Optional[Dict[str, str]] = None, timeout: float = 30.0, **kwargs):
        self.client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            default_headers=default_headers or {},
            timeout=timeout,
            max_retries=0,
            **kwargs
        )
        self.base_url = base_url
        self.timeout = timeout

    def _format_messages(self, messages: List[Dict[str, Any]], images: List[ImagePart]) -> List[Dict[str, Any]]:
        """Format messages with images for OpenAI - converts to content array format"""
        if not images:
            return messages

        image_contents = [
            {"type": "image_url", "image_url": {"url": to_data_uri(img.data, img.mime_type)}}
            for img in images
        ]

        # OpenAI expects images in content array format
        processed_messages = []
        images_added = False

        for msg in messages:
            if msg.get("role") == "user" and not images_added:
                processed_msg = msg.copy()
                content_array = [{"type": "text", "text": msg.get("content", "")}]
                content_array.extend(image_contents)
                processed_msg["content"] = content_array
                processed_messages.append(processed_msg)
                images_added = True
            else:
                processed_messages.append(msg)

        return processed_messages

    async def chat(self, req: ChatRequest) -> ModelResponse:
        params = dict(req.params or {})
        messages = self._format_messages(req.messages, req.images or [])

        completion_params = {
            "model": req.model,
            "messages": messages,
            **params
        }

        t0 = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(**completion_params)
        except Exception as e:
            mapped = map_openai_error(e)
            logger.error(f"OpenAI call failed (status={getattr(e, 'status_code', None)}): {e}")
            raise mapped from e

        dt = time.perf_counter() - t0

        try:
            content = (response.choices[0].message.content or "").strip()
        except (IndexError, AttributeError, TypeError) as e:
            raise UpstreamGenericError(f"Invalid response structure from OpenAI API: {e}") from e

        meta = {
            "provider": "openai",
            "model": getattr(response, 'model', req.model),
            "latency": dt,
            "base_url": self.base_url or "https://api.openai.com/v1",
            "timeout": self.timeout
        }

        if getattr(response, 'usage', None):
            try:
                meta["usage"] = response.usage.model_dump()
            except AttributeError:
                meta["usage"] = {
                    "prompt_tokens": getattr(response.usage, 'prompt_tokens', None),
                    "completion_tokens": getattr(response.usage, 'completion_tokens', None),
                    "total_tokens": getattr(response.usage, 'total_tokens', None)
                }

        meta["finish_reason"] = getattr(response.choices[0], 'finish_reason', None)
        if hasattr(response, 'id'):
            meta["id"] = response.id

        logger.info(f"OpenAI call to {meta['model']} finished in {dt:.2f}s")
        return ModelResponse(content=content, raw=response, meta=meta)

    async def aclose(self) -> None:
        await self.client.close()
