from __future__ import annotations
from typing import Optional, Dict, Any, List
from pathlib import Path
from enum import Enum
import logging

from .prompts import PromptManager
from .providers.base import ChatRequest, ModelResponse, ImagePart, ModelProvider
from .providers.openai_sdk import OpenAIProvider
from ..settings import Settings

logger = logging.getLogger(__name__)


class Provider(Enum):
    OPENAI = "openai"


class MissingCredentialError(ValueError):
    """Raised when a provider needs an API key that is not configured."""


class ModelManager:
    def __init__(self, settings: Settings, prompts_dir: Optional[Path] = None):
        self.settings = settings
        self._providers: Dict[str, ModelProvider] = {}
        self.prompts = PromptManager(prompts_dir or settings.prompts_dir)

    def _get_provider(self, provider_name: str) -> ModelProvider:
        if provider_name in self._providers:
            return self._providers[provider_name]
        if provider_name not in self.settings.providers:
            raise ValueError(f"Unknown provider: {provider_name}")

        provider_cfg = self.settings.providers[provider_name]
        settings = {k: v for k, v in provider_cfg.settings.items() if v is not None}

        if provider_cfg.type == Provider.OPENAI.value:
            if not self.settings.openai_api_key:
                raise MissingCredentialError("OPENAI_API_KEY is not configured")
            provider = OpenAIProvider(api_key=self.settings.openai_api_key, **settings)
        else:
            raise ValueError(f"Unknown provider type: {provider_cfg.type}")
        self._providers[provider_name] = provider
        logger.info(f"initialized provider: {provider_name}")
        return provider

    async def call(self, task: str, variables: Optional[Dict[str, Any]] = None, images: Optional[List[ImagePart]] = None, prompt_ref: Optional[str] = None, **params_override) -> ModelResponse:
        task_cfg = self.settings.task(task)

        prompt_ref = prompt_ref or task_cfg.prompt_ref
        if not prompt_ref:
            raise ValueError(f"Task '{task}' has no prompt configured")
        rendered = self.prompts.render(prompt_ref, variables or {})

        request = ChatRequest(
            model=task_cfg.model,
            messages=rendered,
            images=images,
            params={**task_cfg.params, **params_override},
        )

        provider = self._get_provider(task_cfg.provider)
        return await provider.chat(request)

    async def aclose(self):
        for name, provider in self._providers.items():
            try:
                await provider.aclose()
                logger.info(f"Cleaned up provider: {name}")
            except Exception as e:
                logger.error(f"Cleanup failed for {name}: {e}")

        self._providers.clear()
