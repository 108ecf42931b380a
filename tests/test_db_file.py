from pathlib import Path

from app.core.database import _resolve_database_url


def test_sqlite_parent_directory_is_created(tmp_path):
    """A fresh deploy has no data directory; resolving the url must create it.

    Prevents "unable to open database file" on first start.
    """
    db_path = tmp_path / "data" / "generations.db"
    url = f"sqlite:///{db_path.as_posix()}"

    assert _resolve_database_url(url) == url
    assert db_path.parent.exists(), f"Expected database directory at {db_path.parent} to exist"


def test_unwritable_location_falls_back_to_temp_file(tmp_path):
    # A regular file where the parent directory should be
    blocker = tmp_path / "data"
    blocker.write_text("not a directory")
    url = f"sqlite:///{(blocker / 'generations.db').as_posix()}"

    resolved = _resolve_database_url(url)

    assert resolved != url
    assert resolved.startswith("sqlite:///")
    assert Path(resolved.replace("sqlite:///", "", 1)).name == "generations_fallback.db"


def test_memory_and_server_urls_are_untouched():
    assert _resolve_database_url("sqlite:///:memory:") == "sqlite:///:memory:"
    assert _resolve_database_url("sqlite://") == "sqlite://"
    assert _resolve_database_url("postgresql://user:pw@db/app") == "postgresql://user:pw@db/app"
