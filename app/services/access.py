from app.models.schemas import Generation


def is_owner(generation: Generation, email: str) -> bool:
    """Gates edit, publish and delete."""
    return generation.email == email


def can_view(generation: Generation, email: str) -> bool:
    """Owners see everything they own; everyone sees published, completed work."""
    return is_owner(generation, email) or (generation.published and generation.is_completed)
