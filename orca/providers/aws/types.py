from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from orca.constants import InstanceState, OrcaTag


@dataclass(frozen=True, slots=True)
class Instance:
    """An EC2 instance as last observed through ``describe_instances``."""

    id: str
    instance_type: str
    state: InstanceState
    launch_time: datetime | None = None
    public_ip: str | None = None
    private_ip: str | None = None
    spot: bool = False
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def pod_key(self) -> str | None:
        return self.tags.get(OrcaTag.POD)

    @property
    def pod_uid(self) -> str | None:
        return self.tags.get(OrcaTag.POD_UID)

    @classmethod
    def from_ec2(cls, raw: dict[str, Any]) -> Instance:
        return cls(
            id=raw["InstanceId"],
            instance_type=raw.get("InstanceType", ""),
            state=InstanceState.parse(raw.get("State", {}).get("Name")),
            launch_time=raw.get("LaunchTime"),
            public_ip=raw.get("PublicIpAddress"),
            private_ip=raw.get("PrivateIpAddress"),
            spot=raw.get("InstanceLifecycle") == "spot",
            tags={t["Key"]: t["Value"] for t in raw.get("Tags", [])},
        )


def launch_order(instance: Instance) -> tuple[datetime, str]:
    """Sort key: earliest launch first, instance ID breaks ties."""
    return (instance.launch_time or datetime.max.replace(tzinfo=UTC), instance.id)
