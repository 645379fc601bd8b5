"""Pod lifecycle provider and its registry."""

from orca.provider.provider import OrcaProvider, phase_for, status_for
from orca.provider.registry import PodBinding, PodRegistry
from orca.provider.types import (
    NodeStats,
    PodReference,
    PodStats,
    ReconcileReport,
    StatsSummary,
)

__all__ = [
    "NodeStats",
    "OrcaProvider",
    "PodBinding",
    "PodReference",
    "PodRegistry",
    "PodStats",
    "ReconcileReport",
    "StatsSummary",
    "phase_for",
    "status_for",
]
