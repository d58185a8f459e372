from __future__ import annotations

from pathlib import Path

import pytest

from pygoose.db import Database
from pygoose.dialect import SQLITE3


@pytest.fixture()
def database(tmp_path):
    database = Database(SQLITE3, f"sqlite:///{tmp_path / 'goose.db'}")
    yield database
    database.dispose()


@pytest.fixture()
def migrations_dir(tmp_path) -> Path:
    path = tmp_path / "migrations"
    path.mkdir()
    return path
