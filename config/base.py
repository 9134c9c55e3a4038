# config/base.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=None):
    """Parse an integer setting, falling back to ``default`` on bad input."""
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        return default
    return number


def _parse_field_list(value, default=()):
    """
    Parse a comma-separated field key list while keeping order and removing duplicates.

    Field keys are case-sensitive (``parentMobile`` and ``parentmobile`` differ).

    Returns:
        tuple[str, ...]: Field keys.
    """
    if value is None:
        return tuple(default)

    seen = set()
    fields = []
    for raw_item in value.split(","):
        item = raw_item.strip()
        if not item or item in seen:
            continue
        seen.add(item)
        fields.append(item)
    return tuple(fields)


def _sqlite_uri(filename):
    # Get the project root directory (parent of config directory)
    config_dir = os.path.dirname(os.path.abspath(__file__))
    instance_path = os.path.join(os.path.dirname(config_dir), "instance")
    os.makedirs(instance_path, exist_ok=True)
    # Windows needs forward slashes in the SQLite URI
    db_path = os.path.join(instance_path, filename).replace("\\", "/")
    return f"sqlite:///{db_path}"


class Config:
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")
    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )
    if not SECRET_KEY:
        SECRET_KEY = "dev-secret-key-change-in-production"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Duplicate merge
    ROSTER_NATURAL_KEY = os.environ.get("ROSTER_NATURAL_KEY", "studentId").strip() or "studentId"
    ROSTER_GUARDIAN_SLOT_A_PREFIX = os.environ.get("ROSTER_GUARDIAN_SLOT_A_PREFIX", "parent").strip() or "parent"
    ROSTER_GUARDIAN_SLOT_B_PREFIX = os.environ.get("ROSTER_GUARDIAN_SLOT_B_PREFIX", "parent2").strip() or "parent2"
    ROSTER_MERGE_PROFILE_PATH = os.environ.get("ROSTER_MERGE_PROFILE_PATH")
    ROSTER_DELETE_CHUNK_SIZE = _coerce_int(os.environ.get("ROSTER_DELETE_CHUNK_SIZE"), 100, minimum=1)
    ROSTER_DELETE_MAX_WORKERS = _coerce_int(os.environ.get("ROSTER_DELETE_MAX_WORKERS"), 4, minimum=1)

    # Forward fill
    ROSTER_FORWARD_FILL_HEADER_ROWS = _coerce_int(os.environ.get("ROSTER_FORWARD_FILL_HEADER_ROWS"), 1, minimum=0)

    # Cell validation on ingest
    ROSTER_PHONE_FIELDS = _parse_field_list(
        os.environ.get("ROSTER_PHONE_FIELDS"),
        default=("parentMobile", "parent2Mobile", "studentMobile"),
    )
    ROSTER_EMAIL_FIELDS = _parse_field_list(
        os.environ.get("ROSTER_EMAIL_FIELDS"),
        default=("parentEmail", "parent2Email", "studentEmail"),
    )
    ROSTER_DEFAULT_REGION_PREFIX = os.environ.get("ROSTER_DEFAULT_REGION_PREFIX", "+1").strip() or "+1"

    # Background worker
    ROSTER_WORKER_ENABLED = _coerce_bool(os.environ.get("ROSTER_WORKER_ENABLED"), default=False)
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND")
    CELERY_SQLITE_PATH = os.environ.get("CELERY_SQLITE_PATH")
    CELERY_CONFIG = os.environ.get("CELERY_CONFIG")
    ROSTER_TASK_TIME_LIMIT = _coerce_int(os.environ.get("ROSTER_TASK_TIME_LIMIT"), 15 * 60, minimum=1)
    ROSTER_TASK_SOFT_TIME_LIMIT = _coerce_int(os.environ.get("ROSTER_TASK_SOFT_TIME_LIMIT"), 12 * 60, minimum=1)


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", _sqlite_uri("roster_dev.db"))
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    # Tests point this at a temporary file; chunked deletes need a database
    # that several connections can share.
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }
    ROSTER_WORKER_ENABLED = False
    CELERY_CONFIG = {"task_always_eager": True, "task_eager_propagates": True}


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False


CONFIG_BY_NAME = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
