"""Pod lifecycle on top of EC2.

``OrcaProvider`` is what a virtual-kubelet adapter calls. Each pod gets
one dedicated instance: ``create_pod`` picks the instance type, launches
the instance and records the pod; ``delete_pod`` finds the instance by
its tags and terminates it.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from loguru import logger

from orca.config import OrcaConfig
from orca.constants import InstanceState, OrcaTag
from orca.core.exceptions import (
    InstanceNotFoundError,
    InvalidPodError,
    OrcaError,
    PodNotFoundError,
    SelectionError,
    UnsupportedOperationError,
)
from orca.instances import Selector
from orca.node import Node, configure_node
from orca.pod import Pod, PodCondition, PodPhase, PodStatus
from orca.provider.registry import PodBinding, PodRegistry
from orca.provider.types import NodeStats, PodReference, PodStats, ReconcileReport, StatsSummary
from orca.providers.aws.client import InstanceClient
from orca.providers.aws.types import Instance

log = logger.bind(component="provider")


def phase_for(state: InstanceState) -> str:
    match state:
        case InstanceState.RUNNING:
            return PodPhase.RUNNING
        case InstanceState.PENDING:
            return PodPhase.PENDING
        case _:
            return PodPhase.FAILED


def status_for(instance: Instance) -> PodStatus:
    """Pod status derived from the state of its instance."""
    phase = phase_for(instance.state)
    conditions = [
        PodCondition(
            "PodScheduled",
            "True",
            reason="Scheduled",
            message=f"Pod bound to {instance.instance_type} instance {instance.id}",
        ),
        PodCondition(
            "Ready",
            "True" if phase == PodPhase.RUNNING else "False",
            reason=f"Instance{instance.state.value.title().replace('-', '')}",
            message=f"instance {instance.id} is {instance.state}",
        ),
    ]
    return PodStatus(
        phase=phase,
        conditions=conditions,
        reason="" if phase != PodPhase.FAILED else "InstanceNotRunning",
        message=f"instance {instance.id} is {instance.state}",
        start_time=instance.launch_time,
    )


class OrcaProvider:
    """Virtual-kubelet provider mapping each pod to one EC2 instance.

    Example:
        provider = injector.get(OrcaProvider)
        await provider.reconcile()
        await provider.create_pod(pod)
    """

    def __init__(
        self,
        config: OrcaConfig,
        selector: Selector,
        client: InstanceClient,
        registry: PodRegistry | None = None,
        version: str = "dev",
    ) -> None:
        self.config = config
        self.selector = selector
        self.client = client
        self.registry = registry or PodRegistry()
        self.version = version
        self.node_name = config.node.name
        self.start_time = datetime.now(UTC)

        self._pod_locks: dict[str, asyncio.Lock] = {}
        self._pod_waiters: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Pod lifecycle
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _serialized(self, uid: str) -> AsyncIterator[None]:
        """Hold the create/delete lock for one pod UID."""
        lock = self._pod_locks.setdefault(uid, asyncio.Lock())
        self._pod_waiters[uid] = self._pod_waiters.get(uid, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._pod_waiters[uid] -= 1
            if not self._pod_waiters[uid]:
                del self._pod_waiters[uid]
                del self._pod_locks[uid]

    async def create_pod(self, pod: Pod | None) -> None:
        """Launch an instance for ``pod`` and register it as scheduled.

        Nothing is registered if selection or launch fails. Creating a
        pod that is already registered launches again and replaces the
        entry.
        """
        if pod is None:
            raise InvalidPodError("pod cannot be None")
        if pod.annotations is None:
            raise InvalidPodError(f"pod {pod.key} missing required annotations")

        plog = log.bind(pod=pod.key, uid=pod.uid)
        level = "INFO" if pod.debug else "DEBUG"

        async with self._serialized(pod.uid):
            instance_type = self.selector.select(pod)

            allowed = self.config.instances.allowed_instance_types
            if allowed and instance_type not in allowed:
                raise SelectionError(
                    f"instance type {instance_type} for pod {pod.key} is not allowed",
                    reasons=(f"{instance_type} not in allowed_instance_types",),
                )

            plog.log(level, "Selected instance type {instance_type}", instance_type=instance_type)
            instance = await self.client.launch_instance(pod, instance_type)
            instance_id = instance.id

            stored = pod.deep_copy()
            stored.status = PodStatus(
                phase=PodPhase.PENDING,
                conditions=[
                    PodCondition(
                        "PodScheduled",
                        "True",
                        reason="Scheduled",
                        message=(
                            f"Pod scheduled to ORCA node, launched {instance_type} "
                            f"instance {instance_id}"
                        ),
                    )
                ],
                start_time=instance.launch_time,
            )
            self.registry.put(PodBinding(pod=stored, instance_type=instance_type, instance=instance))

        plog.info(
            "Pod scheduled on {instance_type} instance {instance_id}",
            instance_type=instance_type,
            instance_id=instance_id,
        )

    async def update_pod(self, pod: Pod | None) -> None:
        """Replace labels and annotations of a registered pod."""
        if pod is None:
            raise InvalidPodError("pod cannot be None")
        if not self.registry.update_metadata(pod.uid, pod.labels, pod.annotations):
            raise PodNotFoundError(pod.namespace, pod.name)

    async def delete_pod(self, pod: Pod | None) -> None:
        """Terminate the pod's instance and forget the pod.

        A missing instance is not an error. Lookup and termination
        failures are logged; the registry entry is removed either way.
        A delete arriving while the same pod is being created waits for
        the launch to finish, so the new instance is terminated too.
        """
        if pod is None:
            raise InvalidPodError("pod cannot be None")

        plog = log.bind(pod=pod.key, uid=pod.uid)
        level = "INFO" if pod.debug else "DEBUG"

        async with self._serialized(pod.uid):
            try:
                instance = await self.client.find_by_pod(pod.namespace, pod.name)
            except InstanceNotFoundError:
                plog.log(level, "No instance found for pod {pod}, nothing to delete", pod=pod.key)
            except OrcaError as e:
                plog.error("Failed to look up instance for pod {pod}: {error}", pod=pod.key, error=e)
            else:
                try:
                    await self.client.terminate(instance.id)
                except OrcaError as e:
                    plog.error(
                        "Failed to terminate instance {instance_id}: {error}",
                        instance_id=instance.id,
                        error=e,
                    )
                else:
                    plog.info("Terminated instance {instance_id}", instance_id=instance.id)
            finally:
                self.registry.remove(pod.uid)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_pod(self, namespace: str, name: str) -> Pod:
        binding = self.registry.find(namespace, name)
        if binding is None:
            raise PodNotFoundError(namespace, name)
        return binding.pod

    async def get_pods(self) -> list[Pod]:
        return [b.pod for b in self.registry.list()]

    async def get_pod_status(self, namespace: str, name: str) -> PodStatus:
        """Last recorded status; use :meth:`sync_pod_status` to refresh it."""
        return (await self.get_pod(namespace, name)).status

    async def sync_pod_status(self, namespace: str, name: str) -> PodStatus:
        """Refresh the pod status from the state of its instance.

        Raises:
            InstanceNotFoundError: The pod has no live instance. A registered
                pod is marked Failed first.
        """
        binding = self.registry.find(namespace, name)

        try:
            instance = await self.client.find_by_pod(namespace, name)
        except InstanceNotFoundError:
            if binding is not None:
                status = binding.pod.status
                status.phase = PodPhase.FAILED
                status.reason = "InstanceNotFound"
                status.message = f"no live instance for pod {namespace}/{name}"
                self.registry.update_status(binding.uid, status)
            raise

        status = status_for(instance)
        if binding is not None:
            self.registry.update_status(binding.uid, status, instance)
        return status

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    async def reconcile(self) -> ReconcileReport:
        """Register every tagged instance whose pod is not known yet."""
        adopted: list[str] = []
        known: list[str] = []
        untagged: list[str] = []

        for instance in await self.client.list_managed():
            uid = instance.pod_uid
            namespace = instance.tags.get(OrcaTag.NAMESPACE)
            name = instance.tags.get(OrcaTag.POD_NAME)
            if not (uid and namespace and name):
                untagged.append(instance.id)
                continue
            if uid in self.registry:
                known.append(instance.id)
                continue

            pod = Pod(namespace=namespace, name=name, uid=uid, annotations={}, status=status_for(instance))
            self.registry.put(PodBinding(pod=pod, instance_type=instance.instance_type, instance=instance))
            adopted.append(instance.id)

        if untagged:
            log.warning(
                "Managed instances without pod identity tags: {ids}",
                ids=", ".join(untagged),
            )
        log.info(
            "Reconciled {adopted} adopted, {known} already known, {untagged} untagged",
            adopted=len(adopted),
            known=len(known),
            untagged=len(untagged),
        )
        return ReconcileReport(tuple(adopted), tuple(known), tuple(untagged))

    # -------------------------------------------------------------------------
    # Node
    # -------------------------------------------------------------------------

    def configure_node(self, node: Node) -> Node:
        return configure_node(node, self.config.node, self.version)

    async def get_node_status(self) -> Node:
        return self.configure_node(Node(name=self.node_name))

    async def get_stats_summary(self) -> StatsSummary:
        pods = tuple(
            PodStats(
                pod_ref=PodReference(b.pod.namespace, b.pod.name, b.pod.uid),
                start_time=b.pod.status.start_time,
            )
            for b in self.registry.list()
        )
        return StatsSummary(node=NodeStats(self.node_name, self.start_time), pods=pods)

    # -------------------------------------------------------------------------
    # Unsupported
    # -------------------------------------------------------------------------

    async def get_container_logs(
        self,
        namespace: str,
        pod_name: str,
        container_name: str,
        *,
        tail: int | None = None,
        follow: bool = False,
    ) -> bytes:
        raise UnsupportedOperationError("container logs are not supported by ORCA")

    async def run_in_container(
        self,
        namespace: str,
        pod_name: str,
        container_name: str,
        cmd: Sequence[str],
    ) -> None:
        raise UnsupportedOperationError("exec in container is not supported by ORCA")
