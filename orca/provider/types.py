from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class PodReference:
    namespace: str
    name: str
    uid: str


@dataclass(frozen=True, slots=True)
class PodStats:
    pod_ref: PodReference
    start_time: datetime | None = None


@dataclass(frozen=True, slots=True)
class NodeStats:
    node_name: str
    start_time: datetime


@dataclass(frozen=True, slots=True)
class StatsSummary:
    """Stats reported to the kubelet stats endpoint.

    Usage figures are not collected; only references are filled in.
    """

    node: NodeStats
    pods: tuple[PodStats, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    """Outcome of rebuilding the registry from EC2 tags (instance IDs)."""

    adopted: tuple[str, ...] = ()
    already_known: tuple[str, ...] = ()
    untagged: tuple[str, ...] = ()
