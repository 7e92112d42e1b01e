"""Core data structures for kubestream."""

from kubestream.models.config import KubeStreamConfig
from kubestream.models.events import (
    EventType,
    PodAdded,
    PodDeleted,
    PodModified,
    UnrecognizedEvent,
    WatchEvent,
    WatchFailed,
    decode_watch_event,
)
from kubestream.models.pods import (
    ContainerDescriptor,
    ContainerKind,
    PodCondition,
    PodInfo,
    enumerate_containers,
    is_pod_ready,
)

__all__ = [
    "ContainerDescriptor",
    "ContainerKind",
    "EventType",
    "KubeStreamConfig",
    "PodAdded",
    "PodCondition",
    "PodDeleted",
    "PodInfo",
    "PodModified",
    "UnrecognizedEvent",
    "WatchEvent",
    "WatchFailed",
    "decode_watch_event",
    "enumerate_containers",
    "is_pod_ready",
]
