"""EC2 tags written on ORCA instances.

Tags are the durable record of which pod owns an instance. They must be
enough for an operator or a reconciliation pass to attribute cost and
ownership without access to the provider's memory.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TypeAlias

from orca.constants import ACTIVE_STATES, PROVIDER_IDENTITY, OrcaAnnotation, OrcaTag
from orca.pod import Pod

Tag: TypeAlias = dict[str, str]
Filter: TypeAlias = dict[str, str | list[str]]


def pod_key(namespace: str, name: str) -> str:
    return f"{namespace}/{name}"


def build_tags(pod: Pod, now: datetime | None = None) -> list[Tag]:
    """Tags identifying the owning pod, the provider, and the creation time."""
    created_at = (now or datetime.now(UTC)).strftime("%Y-%m-%dT%H:%M:%SZ")

    tags: list[Tag] = [
        {"Key": OrcaTag.NAME, "Value": f"orca-{pod.namespace}-{pod.name}"},
        {"Key": OrcaTag.POD, "Value": pod.key},
        {"Key": OrcaTag.POD_UID, "Value": pod.uid},
        {"Key": OrcaTag.NAMESPACE, "Value": pod.namespace},
        {"Key": OrcaTag.POD_NAME, "Value": pod.name},
        {"Key": OrcaTag.PROVIDER, "Value": PROVIDER_IDENTITY},
        {"Key": OrcaTag.CREATED_AT, "Value": created_at},
    ]

    if budget := pod.annotation(OrcaAnnotation.BUDGET_NAMESPACE):
        tags.append({"Key": OrcaTag.BUDGET_NAMESPACE, "Value": budget})
    if lifetime := pod.annotation(OrcaAnnotation.MAX_LIFETIME):
        tags.append({"Key": OrcaTag.MAX_LIFETIME, "Value": lifetime})

    return tags


def active_state_filter() -> Filter:
    return {"Name": "instance-state-name", "Values": [s.value for s in ACTIVE_STATES]}


def managed_filters() -> list[Filter]:
    """Filters matching every live instance launched by ORCA."""
    return [
        {"Name": f"tag:{OrcaTag.PROVIDER}", "Values": [PROVIDER_IDENTITY]},
        active_state_filter(),
    ]


def pod_filters(namespace: str, name: str) -> list[Filter]:
    """Filters matching the live instance owned by one pod."""
    return [
        {"Name": f"tag:{OrcaTag.POD}", "Values": [pod_key(namespace, name)]},
        *managed_filters(),
    ]
