"""Configuration loading from environment variables.

Only the CLI and API bootstrap call ``load_config``; everything below them
receives the resulting StackPlanConfig explicitly.
"""

from __future__ import annotations

import os
import re

from stackplan.models.config import (
    APIConfig,
    BackendConfig,
    DeploymentConfig,
    ExecutorConfig,
    LogConfig,
    StackPlanConfig,
)
from stackplan.observability.logging import LOG_FORMATS

_ARN_PATTERN = re.compile(r"^arn:[\w-]+:acm:us-east-1:\d{12}:certificate/[\w-]+$")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"STACKPLAN_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float) -> float:
    return float(_env(key, str(default)))


def _validate_certificate_arn(value: str) -> str:
    # CloudFront only accepts certificates issued in us-east-1.
    if value and not _ARN_PATTERN.match(value):
        raise ValueError(f"Invalid certificate ARN (must be an ACM ARN in us-east-1): {value}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in LOG_FORMATS:
        raise ValueError(f"Invalid log format: {value}. Must be one of {LOG_FORMATS}")
    return value.lower()


def load_config() -> StackPlanConfig:
    """Load configuration from STACKPLAN_* environment variables."""
    return StackPlanConfig(
        deployment=DeploymentConfig(
            account=_env("ACCOUNT", ""),
            region=_env("REGION", ""),
            domain_name=_env("DOMAIN_NAME", ""),
            hosted_zone_id=_env("HOSTED_ZONE_ID", ""),
            certificate_arn=_validate_certificate_arn(_env("CERTIFICATE_ARN", "")),
            stack_name=_env("STACK_NAME", "mono-repo"),
            ui_bucket_name=_env("UI_BUCKET_NAME", "monorepo-ui"),
        ),
        executor=ExecutorConfig(
            max_concurrency=_env_int("MAX_CONCURRENCY", 4, min_val=1, max_val=64),
        ),
        backend=BackendConfig(
            url=_env("BACKEND_URL", ""),
            timeout_seconds=_env_float("BACKEND_TIMEOUT", 30.0),
            token_ref=_env("BACKEND_TOKEN_REF", ""),
        ),
        api=APIConfig(
            host=_env("API_HOST", "127.0.0.1"),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
