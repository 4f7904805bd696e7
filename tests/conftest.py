from datetime import datetime

import pytest

from salat.core.db import dispose_db, init_db

from .helpers import FakeAudio, FakeClock, FakeNotifier, FakeTaskManager


@pytest.fixture
def task_manager():
    return FakeTaskManager()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 15, 0, 0))


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def audio():
    return FakeAudio()


@pytest.fixture
def database(tmp_path):
    init_db(db_url=f"sqlite:///{tmp_path / 'salat-test.db'}")
    yield
    dispose_db()
