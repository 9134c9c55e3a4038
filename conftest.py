# conftest.py

import os

import pytest

# Set testing environment BEFORE importing the app factory so config classes
# resolve their testing defaults.
os.environ["FLASK_ENV"] = "testing"

from roster_app import create_app  # noqa: E402
from roster_app.models import Sheet, db  # noqa: E402


@pytest.fixture(scope="function")
def app(tmp_path):
    """Create a Flask application backed by an isolated SQLite file."""
    # A file database (not :memory:) so the chunked deleter's worker threads
    # see the same data as the test.
    db_path = (tmp_path / "roster_test.db").as_posix()
    test_app = create_app(
        "testing",
        overrides={
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "CELERY_SQLITE_PATH": (tmp_path / "celery.sqlite").as_posix(),
            "CELERY_CONFIG": {"task_always_eager": True, "task_eager_propagates": True},
            "ROSTER_DELETE_CHUNK_SIZE": 100,
            "ROSTER_DELETE_MAX_WORKERS": 4,
            "ROSTER_MERGE_PROFILE_PATH": None,
        },
    )

    with test_app.app_context():
        db.drop_all()
        db.create_all()
        yield test_app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def sheet(app):
    """An empty students sheet."""
    students = Sheet(name="Students", slug="students")
    db.session.add(students)
    db.session.commit()
    return students
