"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubeConfig:
    """Cluster access configuration."""

    kubeconfig: str = ""
    # Empty means every namespace that exists at startup.
    namespaces: list[str] = field(default_factory=list)


@dataclass
class StreamConfig:
    """Log stream configuration."""

    start_delay: float = 0.5
    report_interval: float = 30.0


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class KubeStreamConfig:
    """Top-level kubestream configuration."""

    kube: KubeConfig = field(default_factory=KubeConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    log: LogConfig = field(default_factory=LogConfig)
