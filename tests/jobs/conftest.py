import pytest
from roster_fakes import FakeRecordStore


@pytest.fixture
def fake_store():
    return FakeRecordStore()


@pytest.fixture
def progress_log():
    """A progress callback that keeps every ``(percent, message)`` it receives."""

    calls: list[tuple[int, str]] = []

    def callback(percent: int, message: str) -> None:
        calls.append((percent, message))

    callback.calls = calls
    return callback
