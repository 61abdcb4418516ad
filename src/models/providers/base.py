from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional, List


#unified upstream errors
class ModelError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, upstream_message: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code #upstream http status when one was received
        self.upstream_message = upstream_message

class UpstreamAuthError(ModelError): ...
class UpstreamRateLimitError(ModelError): ...
class UpstreamBadRequestError(ModelError): ...
class UpstreamTimeoutError(ModelError): ...
class UpstreamGenericError(ModelError): ...


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str

@dataclass(frozen=True)
class ChatRequest:
    model: str
    messages: List[Dict[str, Any]]
    params: Dict[str, Any] | None = None
    images: Optional[List[ImagePart]] = None #images attached to the first user message

@dataclass(frozen=True)
class ModelResponse:
    content: str
    raw: Any #provider-native response obj/dict
    meta: Dict[str, Any] #timings, token counts, model, created_at, etc.

class ModelProvider(ABC):
    @abstractmethod
    async def chat(self, req: ChatRequest) -> ModelResponse:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
