import asyncio
from typing import Any, Optional

import httpx
from openai import OpenAI
import structlog

from app.config.settings import Settings
from app.core.errors import ConfigurationError
from app.core.retry import call_with_retry
from app.models.schemas import GenerationMode, ModelCompletion, TokenUsage
from app.repositories.interfaces.ai_service import IAIService
from app.repositories.implementations.prompts import build_user_prompt, system_prompt_for
from app.services.cost import usage_cost

logger = structlog.get_logger()


class EmptyCompletionError(Exception):
    """The provider answered without any content."""


class OpenAIService(IAIService):
    """OpenAI chat-completions implementation of AI service"""

    def __init__(
        self,
        settings: Settings,
        client: Optional[Any] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        if client is None:
            if not settings.openai_api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            # call_with_retry owns the retry budget; the SDK must not retry on its own
            client = OpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                max_retries=0,
                http_client=http_client,
            )
        self.client = client
        self.model = settings.openai_model
        self.max_completion_tokens = settings.model_max_completion_tokens
        self.temperature = settings.model_temperature
        self.max_retries = settings.model_max_retries
        self.backoff_seconds = settings.model_backoff_seconds

    async def generate_test_cases(self, context: str, issue_key: str, mode: GenerationMode) -> ModelCompletion:
        """Generate test cases with retry/backoff (async wrapper around the sync SDK)"""
        messages = [
            {"role": "system", "content": system_prompt_for(mode)},
            {"role": "user", "content": build_user_prompt(context, issue_key)},
        ]

        def sync_call() -> ModelCompletion:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_completion_tokens=self.max_completion_tokens,
                temperature=self.temperature,
            )
            return self._to_completion(response)

        async def attempt() -> ModelCompletion:
            return await asyncio.get_running_loop().run_in_executor(None, sync_call)

        completion = await call_with_retry(
            attempt,
            operation="openai.chat.completions",
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
        logger.info(
            "OpenAI generation succeeded",
            issue_key=issue_key,
            mode=mode.value,
            total_tokens=completion.token_usage.total_tokens,
        )
        return completion

    def _to_completion(self, response: Any) -> ModelCompletion:
        content = ""
        choices = getattr(response, "choices", None) or []
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None) or ""
        if not content:
            raise EmptyCompletionError("Empty response from OpenAI")

        usage = getattr(response, "usage", None)
        token_usage = TokenUsage(
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            total_tokens=getattr(usage, "total_tokens", 0) or 0,
        )
        return ModelCompletion(
            content=content,
            token_usage=token_usage,
            cost=usage_cost(token_usage.prompt_tokens, token_usage.completion_tokens),
        )
