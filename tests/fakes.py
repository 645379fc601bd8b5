"""In-memory stand-ins for the aioboto3 EC2 and SSM clients.

The fakes honour the subset of the API the instance client uses:
``Filters`` on tags and state names, ``describe_instances`` pagination,
termination protection and a scripted sequence of states each launched
instance walks through as it is polled.
"""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from botocore.exceptions import ClientError

from orca.pod import Container, Pod, ResourceRequests
from orca.providers.aws.clients import EC2ClientFactory, SSMClientFactory

BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


def client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


def _factory(client: Any) -> Callable[[], AbstractAsyncContextManager[Any]]:
    @asynccontextmanager
    async def factory() -> AsyncIterator[Any]:
        yield client

    return factory


def ec2_factory(client: FakeEC2) -> EC2ClientFactory:
    return EC2ClientFactory(_factory(client))


def ssm_factory(client: FakeSSM) -> SSMClientFactory:
    return SSMClientFactory(_factory(client))


def _matches(instance: dict[str, Any], filters: list[dict[str, Any]]) -> bool:
    tags = {t["Key"]: t["Value"] for t in instance.get("Tags", [])}
    for f in filters:
        name, values = f["Name"], f["Values"]
        if name.startswith("tag:"):
            if tags.get(name.removeprefix("tag:")) not in values:
                return False
        elif name == "instance-state-name":
            if instance["State"]["Name"] not in values:
                return False
        else:
            raise NotImplementedError(f"filter {name}")
    return True


class FakePaginator:
    def __init__(self, ec2: FakeEC2) -> None:
        self._ec2 = ec2

    def paginate(self, **kwargs: Any) -> AsyncIterator[dict[str, Any]]:
        return self._pages(**kwargs)

    async def _pages(self, Filters: list[dict[str, Any]] | None = None) -> AsyncIterator[dict[str, Any]]:  # noqa: N803
        self._ec2._check("describe_instances:page", {"Filters": Filters})
        matches = [copy.deepcopy(i) for i in self._ec2.instances.values() if _matches(i, Filters or [])]
        size = self._ec2.page_size
        if not matches:
            yield {"Reservations": []}
            return
        for start in range(0, len(matches), size):
            yield {"Reservations": [{"Instances": matches[start:start + size]}]}


class FakeEC2:
    """EC2 client double.

    Attributes:
        launch_states: States a newly launched instance reports on its
            successive ``describe_instances`` polls. The last state sticks;
            an empty list keeps the instance ``pending`` forever.
        hidden_polls: Number of polls answered with
            ``InvalidInstanceID.NotFound`` right after launch.
        errors: Operation name to the ClientError it raises.
    """

    def __init__(self) -> None:
        self.instances: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.launch_states: list[str] = ["running"]
        self.hidden_polls = 0
        self.errors: dict[str, ClientError] = {}
        self.page_size = 1
        self._pending_states: dict[str, list[str]] = {}
        self._hidden: dict[str, int] = {}
        self._counter = 0

    def _check(self, operation: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((operation, kwargs))
        if operation in self.errors:
            raise self.errors[operation]

    def called(self, operation: str) -> list[dict[str, Any]]:
        return [kwargs for op, kwargs in self.calls if op == operation]

    def add_instance(
        self,
        *,
        state: str = "running",
        instance_type: str = "t3.small",
        tags: dict[str, str] | None = None,
        launch_time: datetime | None = None,
        instance_id: str | None = None,
    ) -> str:
        """Seed an instance as if launched by an earlier process."""
        self._counter += 1
        iid = instance_id or f"i-{self._counter:017x}"
        self.instances[iid] = {
            "InstanceId": iid,
            "InstanceType": instance_type,
            "State": {"Name": state},
            "LaunchTime": launch_time or BASE_TIME + timedelta(minutes=self._counter),
            "PrivateIpAddress": f"10.0.0.{self._counter}",
            "Tags": [{"Key": k, "Value": v} for k, v in (tags or {}).items()],
            "DisableApiTermination": False,
        }
        return iid

    def state_of(self, instance_id: str) -> str:
        return self.instances[instance_id]["State"]["Name"]

    async def run_instances(self, **kwargs: Any) -> dict[str, Any]:
        self._check("run_instances", kwargs)
        tags = next(
            spec["Tags"] for spec in kwargs.get("TagSpecifications", []) if spec["ResourceType"] == "instance"
        )
        iid = self.add_instance(
            state="pending",
            instance_type=kwargs["InstanceType"],
            tags={t["Key"]: t["Value"] for t in tags},
        )
        instance = self.instances[iid]
        instance["DisableApiTermination"] = bool(kwargs.get("DisableApiTermination"))
        if kwargs.get("InstanceMarketOptions", {}).get("MarketType") == "spot":
            instance["InstanceLifecycle"] = "spot"
        self._pending_states[iid] = list(self.launch_states)
        self._hidden[iid] = self.hidden_polls
        return {"Instances": [copy.deepcopy(instance)]}

    async def describe_instances(
        self,
        InstanceIds: list[str] | None = None,  # noqa: N803
        Filters: list[dict[str, Any]] | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        self._check("describe_instances", {"InstanceIds": InstanceIds, "Filters": Filters})
        if InstanceIds:
            found = []
            for iid in InstanceIds:
                if iid not in self.instances or self._hidden.get(iid, 0) > 0:
                    if iid in self._hidden:
                        self._hidden[iid] -= 1
                    raise client_error("InvalidInstanceID.NotFound", "DescribeInstances")
                states = self._pending_states.get(iid)
                if states:
                    self.instances[iid]["State"]["Name"] = states.pop(0)
                found.append(copy.deepcopy(self.instances[iid]))
            return {"Reservations": [{"Instances": found}]}

        matches = [copy.deepcopy(i) for i in self.instances.values() if _matches(i, Filters or [])]
        return {"Reservations": [{"Instances": matches}] if matches else []}

    def get_paginator(self, operation: str) -> FakePaginator:
        assert operation == "describe_instances"
        return FakePaginator(self)

    async def modify_instance_attribute(self, InstanceId: str, **kwargs: Any) -> dict[str, Any]:  # noqa: N803
        self._check("modify_instance_attribute", {"InstanceId": InstanceId, **kwargs})
        if "DisableApiTermination" in kwargs:
            self.instances[InstanceId]["DisableApiTermination"] = kwargs["DisableApiTermination"]["Value"]
        return {}

    async def terminate_instances(self, InstanceIds: list[str]) -> dict[str, Any]:  # noqa: N803
        self._check("terminate_instances", {"InstanceIds": InstanceIds})
        changes = []
        for iid in InstanceIds:
            instance = self.instances.get(iid)
            if instance is None:
                raise client_error("InvalidInstanceID.NotFound", "TerminateInstances")
            if instance["DisableApiTermination"]:
                raise client_error("OperationNotPermitted", "TerminateInstances")
            previous = instance["State"]["Name"]
            instance["State"]["Name"] = "terminated"
            self._pending_states.pop(iid, None)
            changes.append({
                "InstanceId": iid,
                "PreviousState": {"Name": previous},
                "CurrentState": {"Name": "terminated"},
            })
        return {"TerminatingInstances": changes}


class FakeSSM:
    def __init__(self, parameters: dict[str, str] | None = None) -> None:
        self.parameters = dict(parameters or {})
        self.calls: list[str] = []

    async def get_parameter(self, Name: str) -> dict[str, Any]:  # noqa: N803
        self.calls.append(Name)
        if Name not in self.parameters:
            raise client_error("ParameterNotFound", "GetParameter")
        return {"Parameter": {"Name": Name, "Type": "String", "Value": self.parameters[Name]}}


def make_pod(
    name: str = "web-0",
    namespace: str = "default",
    *,
    uid: str | None = None,
    annotations: dict[str, str] | None = None,
    requests: list[ResourceRequests] | None = None,
) -> Pod:
    return Pod(
        namespace=namespace,
        name=name,
        uid=uid or f"uid-{namespace}-{name}",
        annotations={} if annotations is None else annotations,
        containers=[
            Container(name=f"c{i}", image="busybox", requests=r)
            for i, r in enumerate(requests or [ResourceRequests()])
        ],
    )
