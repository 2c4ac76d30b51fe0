import os
import tempfile
from pathlib import Path

import pytest

# Point the default database away from the repo before any app module is imported.
os.environ.setdefault(
    "BACKSTORY_DB_PATH", str(Path(tempfile.mkdtemp(prefix="backstory-tests-")) / "backstory.db")
)

from backstory.backend.storage import files  # noqa: E402
from backstory.common import db  # noqa: E402


@pytest.fixture
def isolated_storage(tmp_path, monkeypatch):
    """Fresh SQLite file and local media dir for one test."""
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "backstory.db")
    monkeypatch.setattr(files, "MEDIA_DIR", str(tmp_path / "media"))
    monkeypatch.setattr(files, "USE_SUPABASE_STORAGE", False)
    db.init_db()
    return tmp_path
