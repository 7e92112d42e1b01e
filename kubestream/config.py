"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from kubestream.models.config import KubeConfig, KubeStreamConfig, LogConfig, StreamConfig

_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_RE_DURATION = re.compile(r"^([0-9]+(?:\.[0-9]+)?)(ms|s|m|h)?$")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBESTREAM_{key}", default)


def _default_kubeconfig() -> str:
    return os.environ.get("KUBECONFIG", os.path.expanduser("~/.kube/config"))


def parse_duration(value: str) -> float:
    """Parse ``500ms``, ``2s``, ``1m``, ``1h`` or bare seconds into seconds."""
    match = _RE_DURATION.match(value.strip())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit or "s"]


def parse_namespaces(value: str) -> list[str]:
    """Split a comma-separated namespace list, dropping blanks and repeats."""
    namespaces: list[str] = []
    for item in value.split(","):
        name = item.strip()
        if name and name not in namespaces:
            namespaces.append(name)
    return namespaces


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"json", "console"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> KubeStreamConfig:
    """Load configuration from KUBESTREAM_* environment variables."""
    return KubeStreamConfig(
        kube=KubeConfig(
            kubeconfig=_env("KUBECONFIG", _default_kubeconfig()),
            namespaces=parse_namespaces(_env("NAMESPACES", "")),
        ),
        stream=StreamConfig(
            start_delay=parse_duration(_env("STREAM_DELAY", "500ms")),
            report_interval=parse_duration(_env("REPORT_INTERVAL", "30s")),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
