import asyncio
from typing import Any, Optional

import google.generativeai as genai
import structlog

from app.config.settings import Settings
from app.core.errors import ConfigurationError
from app.core.retry import call_with_retry
from app.models.schemas import GenerationMode, ModelCompletion, TokenUsage
from app.repositories.interfaces.ai_service import IAIService
from app.repositories.implementations.openai_service import EmptyCompletionError
from app.repositories.implementations.prompts import build_user_prompt, system_prompt_for
from app.services.cost import usage_cost

logger = structlog.get_logger()


class GeminiService(IAIService):
    """Google Gemini implementation of AI service (selected with AI_PROVIDER=gemini)."""

    def __init__(self, settings: Settings, model: Optional[Any] = None) -> None:
        if model is None:
            if not settings.gemini_api_key:
                raise ConfigurationError("GEMINI_API_KEY is not set")
            genai.configure(api_key=settings.gemini_api_key)
            model = genai.GenerativeModel(settings.gemini_model)
        self.model = model
        self.max_output_tokens = settings.model_max_completion_tokens
        self.temperature = settings.model_temperature
        self.max_retries = settings.model_max_retries
        self.backoff_seconds = settings.model_backoff_seconds

    async def generate_test_cases(self, context: str, issue_key: str, mode: GenerationMode) -> ModelCompletion:
        # Gemini takes a single prompt; the instructions go first
        prompt = f"{system_prompt_for(mode)}\n\n{build_user_prompt(context, issue_key)}"

        def sync_call() -> ModelCompletion:
            response = self.model.generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=self.max_output_tokens,
                    temperature=self.temperature,
                ),
            )
            return self._to_completion(response)

        async def attempt() -> ModelCompletion:
            return await asyncio.get_running_loop().run_in_executor(None, sync_call)

        completion = await call_with_retry(
            attempt,
            operation="gemini.generate_content",
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
        logger.info(
            "Gemini generation succeeded",
            issue_key=issue_key,
            mode=mode.value,
            total_tokens=completion.token_usage.total_tokens,
        )
        return completion

    def _to_completion(self, response: Any) -> ModelCompletion:
        text = getattr(response, "text", None) or ""
        if not text:
            raise EmptyCompletionError("Empty response from Gemini")

        usage = getattr(response, "usage_metadata", None)
        prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
        completion_tokens = getattr(usage, "candidates_token_count", 0) or 0
        token_usage = TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=getattr(usage, "total_token_count", 0) or prompt_tokens + completion_tokens,
        )
        return ModelCompletion(
            content=text,
            token_usage=token_usage,
            cost=usage_cost(prompt_tokens, completion_tokens),
        )
