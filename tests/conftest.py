from datetime import datetime

import pytest

from memoryflow.db import init_db
from memoryflow.scheduler import ReviewScheduler

NOW = datetime(2024, 3, 15, 8, 0)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_memoryflow.db")
    return db_path


@pytest.fixture
def db(tmp_db):
    init_db(tmp_db)
    return tmp_db


@pytest.fixture
def content_dir(tmp_path):
    return str(tmp_path / "topics")


@pytest.fixture
def scheduler():
    """Scheduler whose clock is pinned to NOW."""
    return ReviewScheduler(clock=lambda: NOW)
