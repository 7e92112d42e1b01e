"""Pod watch events as a closed set of variants.

The raw feed tags each event with a type string and carries either a pod
manifest or, for ERROR, a ``Status`` object. ``decode_watch_event`` turns
that into exactly one of the classes below so the watcher can dispatch with
an exhaustive ``match``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from kubestream.models.pods import PodInfo


class EventType(StrEnum):
    """Watch event type as sent by the API server."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class PodAdded:
    pod: PodInfo


@dataclass(frozen=True)
class PodModified:
    pod: PodInfo


@dataclass(frozen=True)
class PodDeleted:
    pod: PodInfo


@dataclass(frozen=True)
class WatchFailed:
    """ERROR event. ``message`` is None when the payload was not a Status."""

    message: str | None


@dataclass(frozen=True)
class UnrecognizedEvent:
    """An event whose type or payload could not be understood."""

    event_type: str
    detail: str


WatchEvent = PodAdded | PodModified | PodDeleted | WatchFailed | UnrecognizedEvent

_POD_EVENTS: dict[str, type[PodAdded] | type[PodModified] | type[PodDeleted]] = {
    EventType.ADDED: PodAdded,
    EventType.MODIFIED: PodModified,
    EventType.DELETED: PodDeleted,
}


def decode_watch_event(raw: dict[str, Any]) -> WatchEvent:
    """Decode one raw watch event dict (``type`` plus ``raw_object``/``object``)."""
    event_type = str(raw.get("type", ""))
    payload = raw.get("raw_object", raw.get("object"))

    if event_type == EventType.ERROR:
        if isinstance(payload, dict) and payload.get("kind") == "Status":
            return WatchFailed(message=str(payload.get("message", "")))
        return WatchFailed(message=None)

    variant = _POD_EVENTS.get(event_type)
    if variant is None:
        return UnrecognizedEvent(event_type=event_type, detail="unknown event type")
    if not isinstance(payload, dict) or payload.get("kind", "Pod") != "Pod":
        return UnrecognizedEvent(event_type=event_type, detail=f"unexpected object {type(payload).__name__}")
    try:
        pod = PodInfo.from_manifest(payload)
    except ValueError as exc:
        return UnrecognizedEvent(event_type=event_type, detail=str(exc))
    return variant(pod=pod)
