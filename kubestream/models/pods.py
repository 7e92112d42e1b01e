"""Pod view used by the watchers, plus the readiness and container rules.

Pods arrive either from a list call or from a watch event. Both paths hand
over the API's JSON manifest (camelCase keys), which ``PodInfo.from_manifest``
reduces to the handful of fields the streaming core looks at.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

POD_RUNNING = "Running"
CONDITION_READY = "Ready"
CONDITION_TRUE = "True"


class ContainerKind(StrEnum):
    """Which list of the pod spec a container was declared in."""

    CONTAINER = "container"
    INIT = "init"


@dataclass(frozen=True)
class PodCondition:
    """A single ``status.conditions`` entry."""

    type: str
    status: str


@dataclass(frozen=True)
class ContainerDescriptor:
    name: str
    kind: ContainerKind


@dataclass(frozen=True)
class PodInfo:
    """Immutable snapshot of the pod fields that drive streaming."""

    namespace: str
    name: str
    phase: str = ""
    conditions: tuple[PodCondition, ...] = field(default_factory=tuple)
    containers: tuple[str, ...] = field(default_factory=tuple)
    init_containers: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> PodInfo:
        """Build a PodInfo from a pod manifest dict.

        Raises:
            ValueError: the manifest has no ``metadata.name``.
        """
        metadata = manifest.get("metadata") or {}
        name = metadata.get("name")
        if not name:
            raise ValueError("pod manifest has no metadata.name")
        spec = manifest.get("spec") or {}
        status = manifest.get("status") or {}
        return cls(
            namespace=str(metadata.get("namespace") or ""),
            name=str(name),
            phase=str(status.get("phase") or ""),
            conditions=tuple(
                PodCondition(type=str(c.get("type", "")), status=str(c.get("status", "")))
                for c in status.get("conditions") or []
            ),
            containers=_container_names(spec.get("containers")),
            init_containers=_container_names(spec.get("initContainers")),
        )


def _container_names(items: list[dict[str, Any]] | None) -> tuple[str, ...]:
    return tuple(str(c["name"]) for c in items or [] if c.get("name"))


def is_pod_ready(pod: PodInfo) -> bool:
    """True when the pod is Running and reports Ready=True."""
    if pod.phase != POD_RUNNING:
        return False
    return any(c.type == CONDITION_READY and c.status == CONDITION_TRUE for c in pod.conditions)


def enumerate_containers(pod: PodInfo) -> list[ContainerDescriptor]:
    """Regular containers in declared order, then init containers in declared order."""
    descriptors = [ContainerDescriptor(name, ContainerKind.CONTAINER) for name in pod.containers]
    descriptors.extend(ContainerDescriptor(name, ContainerKind.INIT) for name in pod.init_containers)
    return descriptors
