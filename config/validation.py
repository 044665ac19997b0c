# config/validation.py

"""
Environment variable validation for the activity sync service.
Validates required connection settings at startup.
"""

import os
import sys
from typing import List, Mapping, Tuple

SUPABASE_REQUIRED_KEYS: Tuple[str, ...] = ("SUPABASE_URL", "SUPABASE_KEY")
SALESFORCE_SESSION_KEYS: Tuple[str, ...] = ("SF_INSTANCE", "SF_TOKEN")
SALESFORCE_PASSWORD_KEYS: Tuple[str, ...] = ("SF_USERNAME", "SF_PASSWORD", "SF_SECURITY_TOKEN")


def _missing(settings: Mapping[str, object], keys: Tuple[str, ...]) -> List[str]:
    return [key for key in keys if not settings.get(key)]


def validate_sync_settings(settings: Mapping[str, object]) -> List[str]:
    """
    Return a list of human-readable problems with the sync connection settings.

    Salesforce accepts either an existing session (``SF_INSTANCE`` + ``SF_TOKEN``)
    or password credentials; only one group has to be complete.
    """
    errors: List[str] = []

    missing_supabase = _missing(settings, SUPABASE_REQUIRED_KEYS)
    if missing_supabase:
        errors.append(f"Missing Supabase settings: {', '.join(missing_supabase)}")

    missing_session = _missing(settings, SALESFORCE_SESSION_KEYS)
    missing_password = _missing(settings, SALESFORCE_PASSWORD_KEYS)
    if missing_session and missing_password:
        errors.append(
            "Missing Salesforce credentials: set SF_INSTANCE and SF_TOKEN, "
            "or SF_USERNAME, SF_PASSWORD and SF_SECURITY_TOKEN"
        )

    return errors


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

    # Only validate in production
    if flask_env != "production":
        return True, []

    errors = validate_sync_settings(os.environ)

    secret_key = os.environ.get("SECRET_KEY", "")
    if not secret_key:
        errors.append("SECRET_KEY is required in production.")

    is_valid = len(errors) == 0
    return is_valid, errors


def validate_and_exit(flask_env: str = None) -> None:
    """
    Validate environment variables and exit with error if validation fails.
    Intended to be called at application startup.
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
