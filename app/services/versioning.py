"""State transitions for an existing generation's artifact.

Each function takes the current ``Generation`` value and returns the next one;
nothing is mutated in place. Callers persist the returned value in a single
write.
"""
from datetime import datetime
from typing import Optional

from app.models.schemas import (
    Generation,
    GenerationResult,
    MarkdownDocument,
    VersionSnapshot,
    utcnow,
)


def has_snapshot(generation: Generation, version_number: int) -> bool:
    return any(snapshot.version == version_number for snapshot in generation.version)


def apply_content_edit(
    generation: Generation,
    new_content: str,
    editor: str,
    now: Optional[datetime] = None,
) -> Generation:
    """Replace the live content, keeping the outgoing content as a snapshot.

    A snapshot is taken and ``current_version`` advanced only when the content
    actually changes. The snapshot is recorded under the outgoing version
    number, at most once per number.
    """
    now = now or utcnow()
    current_content = generation.content
    current_version = generation.current_version or 1
    history = list(generation.version)

    if new_content != current_content:
        if not has_snapshot(generation, current_version):
            history.append(
                VersionSnapshot(
                    version=current_version,
                    content=current_content,
                    updated_at=now,
                    updated_by=editor,
                )
            )
        current_version += 1

    markdown = generation.markdown or MarkdownDocument()
    return generation.model_copy(
        update={
            "result": GenerationResult(
                markdown=markdown.model_copy(update={"content": new_content})
            ),
            "version": history,
            "current_version": current_version,
            "updated_at": now,
        }
    )


def apply_publication(
    generation: Generation,
    published: bool,
    requester: str,
    now: Optional[datetime] = None,
) -> Generation:
    """Stamp or clear the publication fields together."""
    now = now or utcnow()
    if published:
        update = {"published": True, "published_at": now, "published_by": requester}
    else:
        update = {"published": False, "published_at": None, "published_by": None}
    update["updated_at"] = now
    return generation.model_copy(update=update)


def latest_snapshot(generation: Generation) -> Optional[VersionSnapshot]:
    return generation.version[-1] if generation.version else None
