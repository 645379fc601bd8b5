"""Pod descriptors as seen by ORCA.

These mirror the slice of the Kubernetes ``v1.Pod`` object that the
provider reads: identity, labels and annotations, per-container resource
requests, and the status ORCA reports back. Pods are owned by the
caller; ORCA stores and hands out deep copies.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from kubernetes.utils.quantity import parse_quantity

from orca.constants import GPU_RESOURCE, OrcaAnnotation


class PodPhase:
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class ResourceRequests:
    """Requested resources of one container, in base units."""

    cpu_millis: int = 0
    memory_bytes: int = 0
    gpus: int = 0

    def __add__(self, other: ResourceRequests) -> ResourceRequests:
        return ResourceRequests(
            cpu_millis=self.cpu_millis + other.cpu_millis,
            memory_bytes=self.memory_bytes + other.memory_bytes,
            gpus=self.gpus + other.gpus,
        )

    @classmethod
    def from_resource_list(cls, raw: dict[str, Any] | None) -> ResourceRequests:
        """Parse a Kubernetes ResourceList such as ``{"cpu": "500m", "memory": "1Gi"}``."""
        if not raw:
            return cls()
        cpu = parse_quantity(raw["cpu"]) if "cpu" in raw else 0
        memory = parse_quantity(raw["memory"]) if "memory" in raw else 0
        gpus = parse_quantity(raw[GPU_RESOURCE]) if GPU_RESOURCE in raw else 0
        return cls(
            cpu_millis=int(cpu * 1000),
            memory_bytes=int(memory),
            gpus=int(gpus),
        )


@dataclass(slots=True)
class Container:
    name: str
    image: str = ""
    requests: ResourceRequests = field(default_factory=ResourceRequests)


@dataclass(slots=True)
class PodCondition:
    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(slots=True)
class PodStatus:
    phase: str = PodPhase.PENDING
    conditions: list[PodCondition] = field(default_factory=list)
    reason: str = ""
    message: str = ""
    start_time: datetime | None = None

    def condition(self, type_: str) -> PodCondition | None:
        return next((c for c in self.conditions if c.type == type_), None)


@dataclass(slots=True)
class Pod:
    """A Kubernetes pod, reduced to what ORCA needs.

    ``annotations`` is ``None`` when the pod carries no annotation map
    at all, which the provider rejects outright.
    """

    namespace: str
    name: str
    uid: str
    annotations: dict[str, str] | None = None
    labels: dict[str, str] = field(default_factory=dict)
    containers: list[Container] = field(default_factory=list)
    status: PodStatus = field(default_factory=PodStatus)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def annotation(self, key: str) -> str | None:
        if self.annotations is None:
            return None
        return self.annotations.get(key)

    @property
    def debug(self) -> bool:
        """Whether the pod asks for its lifecycle to be logged at INFO."""
        return self.annotation(OrcaAnnotation.DEBUG) == "true"

    def total_requests(self) -> ResourceRequests:
        """Sum requests across every container of the pod."""
        total = ResourceRequests()
        for container in self.containers:
            total = total + container.requests
        return total

    def deep_copy(self) -> Pod:
        return copy.deepcopy(self)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Pod:
        """Build a Pod from a Kubernetes manifest dict (``kind: Pod``)."""
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        annotations = metadata.get("annotations")
        containers = [
            Container(
                name=c.get("name", ""),
                image=c.get("image", ""),
                requests=ResourceRequests.from_resource_list(
                    (c.get("resources") or {}).get("requests"),
                ),
            )
            for c in spec.get("containers") or []
        ]
        return cls(
            namespace=metadata.get("namespace", "default"),
            name=metadata["name"],
            uid=metadata.get("uid", ""),
            annotations=dict(annotations) if annotations is not None else None,
            labels=dict(metadata.get("labels") or {}),
            containers=containers,
        )
