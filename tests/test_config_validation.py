import pytest

from config.validation import validate_and_exit, validate_environment

ROSTER_ENV = (
    "ROSTER_DELETE_CHUNK_SIZE",
    "ROSTER_DELETE_MAX_WORKERS",
    "ROSTER_FORWARD_FILL_HEADER_ROWS",
    "ROSTER_GUARDIAN_SLOT_A_PREFIX",
    "ROSTER_GUARDIAN_SLOT_B_PREFIX",
    "ROSTER_MERGE_PROFILE_PATH",
    "ROSTER_WORKER_ENABLED",
    "SECRET_KEY",
    "DATABASE_URL",
    "CELERY_BROKER_URL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ROSTER_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_testing_environment_skips_validation(clean_env):
    clean_env.setenv("ROSTER_DELETE_CHUNK_SIZE", "zero")

    assert validate_environment("testing") == (True, [])


def test_development_defaults_are_valid(clean_env):
    assert validate_environment("development") == (True, [])


def test_invalid_roster_settings_are_reported(clean_env, tmp_path):
    clean_env.setenv("ROSTER_DELETE_CHUNK_SIZE", "0")
    clean_env.setenv("ROSTER_DELETE_MAX_WORKERS", "many")
    clean_env.setenv("ROSTER_GUARDIAN_SLOT_B_PREFIX", "parent")
    clean_env.setenv("ROSTER_MERGE_PROFILE_PATH", str(tmp_path / "missing.yaml"))

    is_valid, errors = validate_environment("development")

    assert not is_valid
    assert "ROSTER_DELETE_CHUNK_SIZE must be at least 1 (got 0)." in errors
    assert "ROSTER_DELETE_MAX_WORKERS must be an integer (got 'many')." in errors
    assert any("must differ" in error for error in errors)
    assert any("missing.yaml" in error for error in errors)


def test_production_requires_secret_database_and_broker(clean_env):
    clean_env.setenv("ROSTER_WORKER_ENABLED", "true")

    is_valid, errors = validate_environment("production")

    assert not is_valid
    assert len(errors) == 3
    assert any(error.startswith("SECRET_KEY is required") for error in errors)
    assert any(error.startswith("DATABASE_URL is required") for error in errors)
    assert any(error.startswith("CELERY_BROKER_URL is required") for error in errors)


def test_production_with_complete_environment(clean_env):
    clean_env.setenv("SECRET_KEY", "a" * 64)
    clean_env.setenv("DATABASE_URL", "postgresql://roster@db/roster")

    assert validate_environment("production") == (True, [])


def test_validate_and_exit_exits_on_errors(clean_env, capsys):
    with pytest.raises(SystemExit) as excinfo:
        validate_and_exit("production")

    assert excinfo.value.code == 1
    assert "ENVIRONMENT VALIDATION FAILED" in capsys.readouterr().err
