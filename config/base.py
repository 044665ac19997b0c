# config.py
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


def _coerce_int(value, default, *, minimum=None, maximum=None):
    """
    Parse an integer setting, falling back to ``default`` when unparsable.

    Values outside the optional bounds are clamped.
    """
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        number = minimum
    if maximum is not None and number > maximum:
        number = maximum
    return number


def _coerce_float(value, default, *, minimum=0.0):
    if value is None or str(value).strip() == "":
        return default
    try:
        number = float(str(value).strip())
    except ValueError:
        return default
    return max(minimum, number)


class Config:
    _flask_env = os.environ.get("FLASK_ENV", "development")

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    # Activity sync feature flag
    ACTIVITY_SYNC_ENABLED = _coerce_bool(os.environ.get("ACTIVITY_SYNC_ENABLED"), default=True)

    # Source feed (Supabase staging table exposed through PostgREST)
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_KEY = os.environ.get("SUPABASE_KEY")
    SUPABASE_SOURCE_TABLE = os.environ.get("SUPABASE_SOURCE_TABLE", "aloware_import")

    # Salesforce credentials: either an existing session (instance + token)
    # or username/password/security token for a fresh login.
    SF_INSTANCE = os.environ.get("SF_INSTANCE")
    SF_TOKEN = os.environ.get("SF_TOKEN")
    SF_USERNAME = os.environ.get("SF_USERNAME")
    SF_PASSWORD = os.environ.get("SF_PASSWORD")
    SF_SECURITY_TOKEN = os.environ.get("SF_SECURITY_TOKEN")
    SF_DOMAIN = os.environ.get("SF_DOMAIN")
    SALESFORCE_API_VERSION = os.environ.get("SALESFORCE_API_VERSION", "v59.0")

    # Engine tuning
    SYNC_PAGE_SIZE = _coerce_int(os.environ.get("SYNC_PAGE_SIZE"), 200, minimum=1, maximum=1000)
    SYNC_PURGE_PAGE_SIZE = _coerce_int(os.environ.get("SYNC_PURGE_PAGE_SIZE"), 200, minimum=1, maximum=200)
    SYNC_INTER_BATCH_DELAY = _coerce_float(os.environ.get("SYNC_INTER_BATCH_DELAY"), 0.05)
    SYNC_PROGRESS_LOG_EVERY = _coerce_int(os.environ.get("SYNC_PROGRESS_LOG_EVERY"), 2000, minimum=1)
    SYNC_ERROR_SAMPLE_LIMIT = _coerce_int(os.environ.get("SYNC_ERROR_SAMPLE_LIMIT"), 3, minimum=0)
    SYNC_HTTP_TIMEOUT = _coerce_float(os.environ.get("SYNC_HTTP_TIMEOUT"), 30.0, minimum=1.0)

    # Event duration and fallback owner for every created activity.
    SYNC_ACTIVITY_DURATION_MINUTES = _coerce_int(
        os.environ.get("SYNC_ACTIVITY_DURATION_MINUTES"), 15, minimum=0
    )
    SYNC_DEFAULT_OWNER_ID = os.environ.get("SYNC_DEFAULT_OWNER_ID", "005a500001mkMsbAAE")

    # Salesforce schema names
    SYNC_MARKER_FIELD = os.environ.get("SYNC_MARKER_FIELD", "Original_Activity_Date__c")
    SYNC_AGENT_OBJECT = os.environ.get("SYNC_AGENT_OBJECT", "User")
    SYNC_AGENT_USERNAME_FIELD = os.environ.get("SYNC_AGENT_USERNAME_FIELD", "Aloware_Username__c")
    SYNC_AGENT_RELATION_FIELD = os.environ.get("SYNC_AGENT_RELATION_FIELD", "Aloware_Agent__c")

    # Optional bearer token guarding the JSON endpoints
    SYNC_API_TOKEN = os.environ.get("SYNC_API_TOKEN")

    # Background worker
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND")
    CELERY_SQLITE_PATH = os.environ.get("CELERY_SQLITE_PATH")
    CELERY_CONFIG = os.environ.get("CELERY_CONFIG")
    SYNC_TASK_TIME_LIMIT = _coerce_int(os.environ.get("SYNC_TASK_TIME_LIMIT"), 6 * 60 * 60, minimum=60)

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # 'json' or 'text'
    LOG_FILE = os.environ.get("LOG_FILE", os.path.join("logs", "activity_sync.log"))
    LOG_FILE_MAX_BYTES = _coerce_int(os.environ.get("LOG_FILE_MAX_BYTES"), 10485760, minimum=1024)  # 10MB
    LOG_FILE_BACKUP_COUNT = _coerce_int(os.environ.get("LOG_FILE_BACKUP_COUNT"), 5, minimum=0)
    ENABLE_CONSOLE_LOGGING = _coerce_bool(os.environ.get("ENABLE_CONSOLE_LOGGING"), default=True)
    ENABLE_FILE_LOGGING = _coerce_bool(os.environ.get("ENABLE_FILE_LOGGING"), default=False)


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SUPABASE_URL = "https://staging.supabase.test"
    SUPABASE_KEY = "test-supabase-key"
    SF_INSTANCE = "https://example.my.salesforce.com"
    SF_TOKEN = "test-session-token"
    SYNC_INTER_BATCH_DELAY = 0.0
    SYNC_API_TOKEN = None
    ENABLE_FILE_LOGGING = False


class ProductionConfig(Config):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")  # Structured logging for production
