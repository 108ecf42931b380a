"""Token and cost estimates for model calls.

Pricing is fixed per million tokens; the figures are estimates, not metered
charges.
"""
import math
from typing import Iterable

from app.models.schemas import IssueAttachment

INPUT_COST_PER_MILLION = 0.15
OUTPUT_COST_PER_MILLION = 0.60

CHARS_PER_TOKEN = 4
TOKENS_PER_IMAGE = 200
ESTIMATED_OUTPUT_TOKENS = 8000


def usage_cost(prompt_tokens: int, completion_tokens: int) -> float:
    """Cost in USD for a completed call."""
    return (prompt_tokens / 1_000_000) * INPUT_COST_PER_MILLION + (
        completion_tokens / 1_000_000
    ) * OUTPUT_COST_PER_MILLION


def estimate_tokens(text: str, image_count: int = 0) -> int:
    return math.ceil(len(text or "") / CHARS_PER_TOKEN) + image_count * TOKENS_PER_IMAGE


def estimate_cost(estimated_tokens: int) -> float:
    """Pre-flight cost assuming a fixed output allowance."""
    return usage_cost(estimated_tokens, ESTIMATED_OUTPUT_TOKENS)


def is_image(attachment: IssueAttachment) -> bool:
    return bool(attachment.mime_type) and attachment.mime_type.lower().startswith("image/")


def count_image_attachments(attachments: Iterable[IssueAttachment]) -> int:
    return sum(1 for attachment in attachments if is_image(attachment))
