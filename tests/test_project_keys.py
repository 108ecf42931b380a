import pytest

from app.models.database import ProjectModel
from app.repositories.interfaces.project_repository import ProjectExistsError
from app.services.project_service import ProjectService, extract_project_key


@pytest.mark.parametrize(
    "issue_key, expected",
    [
        ("SDET-123", "SDET"),
        ("sdet-45", "SDET"),
        ("KAN2-7", "KAN2"),
        ("NOHYPHEN", None),
        ("-12", None),
        ("", None),
        (None, None),
        (42, None),
    ],
)
def test_extract_project_key(issue_key, expected):
    assert extract_project_key(issue_key) == expected


async def test_touch_creates_then_reuses_project(project_repository, generation_repository, db_session):
    projects = ProjectService(project_repository, generation_repository)

    created = await projects.touch("kan", "alice@example.com")
    again = await projects.touch("KAN", "bob@example.com")

    assert created.id == again.id
    assert again.project_key == "KAN"
    assert again.created_by == "alice@example.com"
    assert again.last_generated_at >= created.last_generated_at
    assert db_session.query(ProjectModel).count() == 1


async def test_touch_recovers_from_create_race(project_repository, generation_repository, monkeypatch):
    projects = ProjectService(project_repository, generation_repository)
    winner = await projects.touch("KAN", "alice@example.com")

    original_get = project_repository.get_by_key
    calls = []

    async def stale_first_read(key):
        calls.append(key)
        if len(calls) == 1:
            return None
        return await original_get(key)

    async def conflicting_create(project):
        raise ProjectExistsError(project.project_key)

    monkeypatch.setattr(project_repository, "get_by_key", stale_first_read)
    monkeypatch.setattr(project_repository, "create", conflicting_create)

    project = await projects.touch("KAN", "bob@example.com")

    assert project.id == winner.id
    assert len(calls) == 2


async def test_refresh_total_recounts(project_repository, generation_repository, service, db_session):
    await service.create_generation("KAN-10", "alice@example.com")
    await service.create_generation("KAN-11", "alice@example.com")
    project = db_session.query(ProjectModel).one()

    projects = ProjectService(project_repository, generation_repository)
    project.total_generations = 99
    db_session.commit()

    assert await projects.refresh_total(project.id) == 2
    db_session.refresh(project)
    assert project.total_generations == 2
