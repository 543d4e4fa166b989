"""
Runtime configuration for the SES Email API Lambda functions.

Every function builds one AppConfig per process from its environment and
passes it into the components that need it. The CDK stack is the only
writer of these variables.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class AppConfig:
    """Immutable settings shared by the log store and the handlers."""

    app_name: str = "sesEmailApp"
    log_table_name: str = ""
    destination_index_name: str = "destinationIdx"
    log_expiry_days: int = 0
    utc_offset: str = "+00:00"
    default_from_address: str = ""
    configuration_set_name: str = ""
    metrics_namespace: str = ""
    query_page_limit: int = 0
    notification_workers: int = 8
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Build the configuration from environment variables.

        Args:
            environ: Mapping to read from, defaults to os.environ

        Returns:
            AppConfig populated from the environment

        Raises:
            ValueError: If a numeric setting cannot be parsed
        """
        env = os.environ if environ is None else environ
        return cls(
            app_name=env.get("APP_NAME", cls.app_name),
            log_table_name=env.get("LOG_TABLE_NAME", ""),
            destination_index_name=env.get("DESTINATION_ID_INDEX") or cls.destination_index_name,
            log_expiry_days=_int_setting(env, "LOG_EXPIRY", 0),
            utc_offset=env.get("UTC_OFFSET") or cls.utc_offset,
            default_from_address=env.get("DEFAULT_FROM_ADDRESS", ""),
            configuration_set_name=env.get("CONFIGURATION_SET_NAME", ""),
            metrics_namespace=env.get("METRICS_NAMESPACE", ""),
            query_page_limit=_int_setting(env, "QUERY_PAGE_LIMIT", 0),
            notification_workers=max(1, _int_setting(env, "NOTIFICATION_WORKERS", 8)),
            log_level=(env.get("LOG_LEVEL") or cls.log_level).upper(),
        )
