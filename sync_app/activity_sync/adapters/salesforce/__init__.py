"""Salesforce adapter readiness and client construction."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import import_module
from typing import Any, Literal, Mapping, Tuple

from sync_app.activity_sync.errors import ConfigurationError
from sync_app.activity_sync.metrics import record_salesforce_auth_attempt

SESSION_CONFIG_KEYS: Tuple[str, ...] = ("SF_INSTANCE", "SF_TOKEN")
PASSWORD_CONFIG_KEYS: Tuple[str, ...] = ("SF_USERNAME", "SF_PASSWORD", "SF_SECURITY_TOKEN")


class SalesforceAdapterError(ConfigurationError):
    """Base error for Salesforce adapter readiness issues."""


class SalesforceAdapterDependencyError(SalesforceAdapterError):
    """Raised when simple-salesforce is not installed."""


class SalesforceAdapterConfigError(SalesforceAdapterError):
    """Raised when neither credential group is complete."""


class SalesforceAdapterAuthError(SalesforceAdapterError):
    """Raised when credentials fail authentication."""


@dataclass(frozen=True)
class SalesforceAdapterReadiness:
    dependency_ok: bool
    dependency_errors: Tuple[str, ...]
    auth_mode: Literal["session", "password", "none"]
    missing_config: Tuple[str, ...]
    auth_status: Literal["skipped", "ok", "failed"]
    auth_error: str | None = None

    @property
    def status(self) -> str:
        if not self.dependency_ok:
            return "missing-deps"
        if self.auth_mode == "none":
            return "missing-config"
        if self.auth_status == "failed":
            return "auth-error"
        return "ready"

    def messages(self) -> Tuple[str, ...]:
        messages: list[str] = list(self.dependency_errors)
        if self.auth_mode == "none":
            messages.append(
                "Missing Salesforce credentials: set SF_INSTANCE and SF_TOKEN, "
                f"or {', '.join(PASSWORD_CONFIG_KEYS)} (missing: {', '.join(self.missing_config)})"
            )
        if self.auth_status == "failed" and self.auth_error:
            messages.append(self.auth_error)
        return tuple(messages)

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "status": self.status,
            "dependency_ok": self.dependency_ok,
            "dependency_errors": list(self.dependency_errors),
            "auth_mode": self.auth_mode,
            "missing_config": list(self.missing_config),
            "auth_status": self.auth_status,
            "messages": list(self.messages()),
        }
        if self.auth_error:
            payload["auth_error"] = self.auth_error
        return payload


def _resolve_auth_mode(config: Mapping[str, Any]) -> tuple[Literal["session", "password", "none"], Tuple[str, ...]]:
    missing_session = tuple(key for key in SESSION_CONFIG_KEYS if not config.get(key))
    if not missing_session:
        return "session", ()
    missing_password = tuple(key for key in PASSWORD_CONFIG_KEYS if not config.get(key))
    if not missing_password:
        return "password", ()
    return "none", tuple(sorted(set(missing_session) | set(missing_password)))


def _load_simple_salesforce() -> tuple[list[str], Any]:
    try:
        return [], import_module("simple_salesforce")
    except ModuleNotFoundError:
        return ['simple-salesforce is not installed. Install via pip install "simple-salesforce".'], None


def _instance_url(raw: str) -> str:
    if raw.startswith("http://") or raw.startswith("https://"):
        return raw.rstrip("/")
    return f"https://{raw.rstrip('/')}"


def _build_client(module: Any, config: Mapping[str, Any], auth_mode: str) -> Any:
    if auth_mode == "session":
        return module.Salesforce(
            instance_url=_instance_url(str(config["SF_INSTANCE"])),
            session_id=config["SF_TOKEN"],
            version=str(config.get("SALESFORCE_API_VERSION", "v59.0")).lstrip("v"),
        )
    kwargs: dict[str, Any] = {
        "username": config["SF_USERNAME"],
        "password": config["SF_PASSWORD"],
        "security_token": config["SF_SECURITY_TOKEN"],
        "version": str(config.get("SALESFORCE_API_VERSION", "v59.0")).lstrip("v"),
    }
    if config.get("SF_DOMAIN"):
        kwargs["domain"] = config["SF_DOMAIN"]
    return module.Salesforce(**kwargs)


def check_salesforce_adapter_readiness(
    config: Mapping[str, Any],
    *,
    require_auth_ping: bool = False,
) -> SalesforceAdapterReadiness:
    """
    Perform a non-raising readiness check for the Salesforce adapter.

    Args:
        config: Flask config (or any mapping) holding the ``SF_*`` keys.
        require_auth_ping: Whether to attempt a credentialed call to validate credentials.
    """

    dependency_errors, module = _load_simple_salesforce()
    auth_mode, missing = _resolve_auth_mode(config)

    auth_status: Literal["skipped", "ok", "failed"] = "skipped"
    auth_error: str | None = None
    if require_auth_ping and module is not None and auth_mode != "none":
        try:
            client = _build_client(module, config, auth_mode)
            # A session id is only proven valid once it is used.
            client.limits()
            auth_status = "ok"
        except Exception as exc:  # noqa: BLE001 - surfaced to the operator verbatim
            auth_status = "failed"
            auth_error = f"Salesforce authentication failed: {exc}"
        record_salesforce_auth_attempt("success" if auth_status == "ok" else "failure")

    return SalesforceAdapterReadiness(
        dependency_ok=not dependency_errors,
        dependency_errors=tuple(dependency_errors),
        auth_mode=auth_mode,
        missing_config=missing,
        auth_status=auth_status,
        auth_error=auth_error,
    )


def ensure_salesforce_adapter_ready(
    config: Mapping[str, Any],
    *,
    require_auth_ping: bool = False,
) -> SalesforceAdapterReadiness:
    """
    Validate Salesforce adapter readiness, raising actionable errors when not ready.
    """

    readiness = check_salesforce_adapter_readiness(config, require_auth_ping=require_auth_ping)
    if not readiness.dependency_ok:
        raise SalesforceAdapterDependencyError("; ".join(readiness.dependency_errors))
    if readiness.auth_mode == "none":
        raise SalesforceAdapterConfigError("; ".join(readiness.messages()))
    if readiness.auth_status == "failed":
        raise SalesforceAdapterAuthError(readiness.auth_error or "Salesforce authentication failed.")
    return readiness


def create_salesforce_client(config: Mapping[str, Any]) -> Any:
    """Instantiate a simple-salesforce client from the configured credentials."""

    readiness = ensure_salesforce_adapter_ready(config)
    _, module = _load_simple_salesforce()
    try:
        return _build_client(module, config, readiness.auth_mode)
    except Exception as exc:
        record_salesforce_auth_attempt("failure")
        raise SalesforceAdapterAuthError(f"Salesforce authentication failed: {exc}") from exc


__all__ = [
    "PASSWORD_CONFIG_KEYS",
    "SESSION_CONFIG_KEYS",
    "SalesforceAdapterAuthError",
    "SalesforceAdapterConfigError",
    "SalesforceAdapterDependencyError",
    "SalesforceAdapterError",
    "SalesforceAdapterReadiness",
    "check_salesforce_adapter_readiness",
    "create_salesforce_client",
    "ensure_salesforce_adapter_ready",
]
