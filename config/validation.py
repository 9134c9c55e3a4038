# config/validation.py

"""
Environment variable validation for the roster jobs application.
Validates required environment variables at startup.
"""

import os
import sys
from typing import List, Tuple

_INTEGER_SETTINGS = (
    ("ROSTER_DELETE_CHUNK_SIZE", 1),
    ("ROSTER_DELETE_MAX_WORKERS", 1),
    ("ROSTER_FORWARD_FILL_HEADER_ROWS", 0),
)


def _validate_integer_settings(errors: List[str]) -> None:
    for name, minimum in _INTEGER_SETTINGS:
        raw = os.environ.get(name)
        if raw is None or raw.strip() == "":
            continue
        try:
            value = int(raw.strip())
        except ValueError:
            errors.append(f"{name} must be an integer (got {raw!r}).")
            continue
        if value < minimum:
            errors.append(f"{name} must be at least {minimum} (got {value}).")


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Validate required environment variables.

    Args:
        flask_env: Flask environment (development, production, testing)
                  If None, reads from FLASK_ENV environment variable

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if flask_env is None:
        flask_env = os.environ.get("FLASK_ENV", "development")

    errors = []

    if flask_env == "testing":
        return True, []

    _validate_integer_settings(errors)

    prefix_a = os.environ.get("ROSTER_GUARDIAN_SLOT_A_PREFIX", "parent").strip() or "parent"
    prefix_b = os.environ.get("ROSTER_GUARDIAN_SLOT_B_PREFIX", "parent2").strip() or "parent2"
    if prefix_a == prefix_b:
        errors.append("ROSTER_GUARDIAN_SLOT_A_PREFIX and ROSTER_GUARDIAN_SLOT_B_PREFIX must differ.")

    profile_path = os.environ.get("ROSTER_MERGE_PROFILE_PATH")
    if profile_path and not os.path.exists(profile_path):
        errors.append(f"ROSTER_MERGE_PROFILE_PATH points to a missing file: {profile_path}")

    if flask_env != "production":
        return len(errors) == 0, errors

    secret_key = os.environ.get("SECRET_KEY", "")
    if not secret_key or secret_key == "your-secret-key" or secret_key == "your_secret_key":
        errors.append(
            "SECRET_KEY is required in production and must not be the default value. "
            'Generate a secure key: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        errors.append("DATABASE_URL is required in production. Set it to your PostgreSQL connection string.")

    if os.environ.get("ROSTER_WORKER_ENABLED", "false").lower() == "true":
        if not os.environ.get("CELERY_BROKER_URL"):
            errors.append("CELERY_BROKER_URL is required when ROSTER_WORKER_ENABLED=true in production")

    is_valid = len(errors) == 0
    return is_valid, errors


def validate_and_exit(flask_env: str = None) -> None:
    """
    Validate environment variables and exit with error if validation fails.
    Intended to be called at application startup.

    Args:
        flask_env: Flask environment (development, production, testing)
    """
    is_valid, errors = validate_environment(flask_env)

    if not is_valid:
        print("=" * 80, file=sys.stderr)
        print("ENVIRONMENT VALIDATION FAILED", file=sys.stderr)
        print("=" * 80, file=sys.stderr)
        print("\nThe following environment variables are missing or invalid:\n", file=sys.stderr)

        for i, error in enumerate(errors, 1):
            print(f"{i}. {error}", file=sys.stderr)

        print("\n" + "=" * 80, file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        print("=" * 80, file=sys.stderr)

        sys.exit(1)
