from abc import ABC, abstractmethod
from app.models.schemas import GenerationMode, ModelCompletion


class IAIService(ABC):
    """Interface for AI/LLM operations"""

    @abstractmethod
    async def generate_test_cases(self, context: str, issue_key: str, mode: GenerationMode) -> ModelCompletion:
        """Generate a markdown test-case document for an issue.

        Retries transient failures; raises the last error once retries are exhausted.
        """
        pass
