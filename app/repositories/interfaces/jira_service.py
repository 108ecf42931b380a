from abc import ABC, abstractmethod
from app.models.schemas import IssueResult


class IJiraService(ABC):
    """Interface for JIRA integration operations"""

    @abstractmethod
    async def get_issue(self, issue_key: str) -> IssueResult:
        """Fetch an issue with its description flattened to plain text"""
        pass
