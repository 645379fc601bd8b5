"""EC2 instance lifecycle for pods.

One instance per pod. ``InstanceClient`` launches the instance, blocks
until EC2 reports it ``running`` and terminates it again if it never
gets there. Discovery goes through tags only, so an instance launched
by a previous process is found the same way as one launched by this
process.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from typing import Any

from botocore.exceptions import ClientError
from loguru import logger

from orca.config import OrcaConfig, WorkloadTemplate
from orca.constants import InstanceState, LaunchType, OrcaAnnotation
from orca.core.exceptions import (
    CloudAPIError,
    InstanceFailedError,
    InstanceNotFoundError,
    InvalidAnnotationError,
    LaunchTimeoutError,
    ProvisioningError,
)
from orca.pod import Pod
from orca.providers.aws.clients import EC2ClientFactory, SSMClientFactory
from orca.providers.aws.tags import build_tags, managed_filters, pod_filters, pod_key
from orca.providers.aws.types import Instance, launch_order
from orca.providers.wait import TerminalStateError, wait_for_ready

log = logger.bind(component="aws-instances")

NOT_FOUND = "InvalidInstanceID.NotFound"

DEFAULT_USER_DATA = """#!/bin/bash
echo "ORCA instance for pod {pod}"
"""


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


class InstanceClient:
    """Launches, discovers and terminates the EC2 instances backing pods."""

    def __init__(
        self,
        ec2: EC2ClientFactory,
        ssm: SSMClientFactory,
        config: OrcaConfig,
    ) -> None:
        self.ec2 = ec2
        self.ssm = ssm
        self.config = config

    # -------------------------------------------------------------------------
    # Launch
    # -------------------------------------------------------------------------

    async def launch(self, pod: Pod, instance_type: str) -> str:
        """Launch an instance for ``pod`` and return its ID once running."""
        return (await self.launch_instance(pod, instance_type)).id

    async def launch_instance(self, pod: Pod, instance_type: str) -> Instance:
        """Launch an instance for ``pod`` and return it as observed running.

        If the instance fails, times out or the calling task is cancelled
        while waiting, the instance is terminated before the error
        propagates.
        """
        if pod is None:
            raise ValueError("pod cannot be None")
        if not instance_type:
            raise ValueError("instance type cannot be empty")

        plog = log.bind(pod=pod.key, uid=pod.uid, instance_type=instance_type)
        level = "INFO" if pod.debug else "DEBUG"

        request = await self.build_request(pod, instance_type)
        plog.log(
            level,
            "Launching {market} instance with image {ami}",
            market=request.get("InstanceMarketOptions", {}).get("MarketType", "on-demand"),
            ami=request["ImageId"],
        )

        try:
            async with self.ec2() as ec2:
                response = await ec2.run_instances(**request)
        except ClientError as e:
            raise CloudAPIError("run_instances", f"pod {pod.key}", e) from e

        instances = response.get("Instances", [])
        if not instances:
            raise ProvisioningError(f"run_instances returned no instance for pod {pod.key}")
        instance_id = instances[0]["InstanceId"]
        plog = plog.bind(instance_id=instance_id)
        plog.info("Instance {instance_id} launched, waiting for running", instance_id=instance_id)

        try:
            instance = await self.wait_running(instance_id)
        except (Exception, asyncio.CancelledError) as e:
            reason = "launch cancelled" if isinstance(e, asyncio.CancelledError) else str(e)
            await asyncio.shield(self._cleanup(instance_id, reason))
            raise

        plog.info(
            "Instance {instance_id} is running at {ip}",
            instance_id=instance_id,
            ip=instance.private_ip or "no private address",
        )
        return instance

    async def build_request(self, pod: Pod, instance_type: str) -> dict[str, Any]:
        """Build the ``run_instances`` arguments for one pod."""
        template = self._template(pod)
        launch_type = self.launch_type(pod, template)
        tags = build_tags(pod)

        request: dict[str, Any] = {
            "ImageId": await self.resolve_ami(pod),
            "InstanceType": instance_type,
            "MinCount": 1,
            "MaxCount": 1,
            "UserData": self.user_data(pod),
            "TagSpecifications": [
                {"ResourceType": "instance", "Tags": tags},
                {"ResourceType": "volume", "Tags": tags},
            ],
        }

        aws = self.config.aws
        if aws.subnet_id:
            request["SubnetId"] = aws.subnet_id
        if aws.security_group_ids:
            request["SecurityGroupIds"] = list(aws.security_group_ids)

        if pod.annotation(OrcaAnnotation.TERMINATION_PROTECTION) == "true":
            request["DisableApiTermination"] = True

        if launch_type == LaunchType.SPOT:
            spot_options: dict[str, Any] = {
                "SpotInstanceType": "one-time",
                "InstanceInterruptionBehavior": "terminate",
            }
            if price := self.max_spot_price(pod, instance_type, template):
                spot_options["MaxPrice"] = price
            request["InstanceMarketOptions"] = {
                "MarketType": "spot",
                "SpotOptions": spot_options,
            }

        return request

    def _template(self, pod: Pod) -> WorkloadTemplate | None:
        name = pod.annotation(OrcaAnnotation.WORKLOAD_TEMPLATE)
        if not name:
            return None
        return self.config.instances.templates.get(name)

    def launch_type(self, pod: Pod, template: WorkloadTemplate | None = None) -> LaunchType:
        """Annotation, then workload template, then the configured default."""
        value = pod.annotation(OrcaAnnotation.LAUNCH_TYPE)
        if not value and template is not None:
            value = template.launch_type
        if not value:
            return self.config.instances.default_launch_type

        try:
            return LaunchType(value)
        except ValueError:
            raise InvalidAnnotationError(
                OrcaAnnotation.LAUNCH_TYPE, value, "on-demand or spot"
            ) from None

    def max_spot_price(
        self,
        pod: Pod,
        instance_type: str,
        template: WorkloadTemplate | None = None,
    ) -> str | None:
        """Annotation, then workload template, then per-type config; None means no cap."""
        if value := pod.annotation(OrcaAnnotation.MAX_SPOT_PRICE):
            try:
                valid = float(value) > 0
            except ValueError:
                valid = False
            if not valid:
                raise InvalidAnnotationError(
                    OrcaAnnotation.MAX_SPOT_PRICE, value, "a positive price in USD per hour"
                )
            return value
        if template is not None and template.max_spot_price:
            return template.max_spot_price
        return self.config.instances.max_spot_prices.get(instance_type)

    async def resolve_ami(self, pod: Pod) -> str:
        """Annotation, then ``aws.ami``, then the ``aws.ami_parameter`` SSM lookup."""
        if ami := pod.annotation(OrcaAnnotation.AMI):
            return ami

        aws = self.config.aws
        if aws.ami:
            return aws.ami

        if aws.ami_parameter:
            try:
                async with self.ssm() as ssm:
                    response = await ssm.get_parameter(Name=aws.ami_parameter)
            except ClientError as e:
                raise CloudAPIError("get_parameter", aws.ami_parameter, e) from e
            return response["Parameter"]["Value"]

        raise ProvisioningError(
            f"no image for pod {pod.key}: set the {OrcaAnnotation.AMI} annotation, "
            "aws.ami or aws.ami_parameter"
        )

    def user_data(self, pod: Pod) -> bytes:
        """Raw user data; botocore base64-encodes it on the wire.

        The payload may be binary, e.g. gzip-compressed cloud-init.
        """
        encoded = pod.annotation(OrcaAnnotation.USER_DATA)
        if not encoded:
            return DEFAULT_USER_DATA.format(pod=pod.key).encode()
        try:
            return base64.b64decode(encoded, validate=True)
        except binascii.Error:
            raise InvalidAnnotationError(
                OrcaAnnotation.USER_DATA, encoded, "base64-encoded data"
            ) from None

    # -------------------------------------------------------------------------
    # Wait
    # -------------------------------------------------------------------------

    async def wait_running(self, instance_id: str) -> Instance:
        """Poll until the instance is running.

        Raises:
            InstanceFailedError: The instance left ``pending`` for anything
                but ``running``.
            LaunchTimeoutError: ``launch.timeout`` elapsed first.
        """
        launch = self.config.launch

        async def poll() -> Instance | None:
            try:
                async with self.ec2() as ec2:
                    response = await ec2.describe_instances(InstanceIds=[instance_id])
            except ClientError as e:
                if _error_code(e) == NOT_FOUND:
                    log.debug("Instance {id} not visible yet", id=instance_id)
                    return None
                raise CloudAPIError("describe_instances", instance_id, e) from e
            for reservation in response.get("Reservations", []):
                for raw in reservation.get("Instances", []):
                    return Instance.from_ec2(raw)
            return None

        try:
            return await wait_for_ready(
                poll_fn=poll,
                ready_check=lambda i: i.state == InstanceState.RUNNING,
                terminal_check=lambda i: i.state not in (InstanceState.PENDING, InstanceState.RUNNING),
                timeout=launch.timeout,
                interval=launch.poll_interval,
                description=f"instance {instance_id}",
            )
        except TerminalStateError as e:
            state = e.result.state if isinstance(e.result, Instance) else InstanceState.UNKNOWN
            raise InstanceFailedError(instance_id, state) from e
        except TimeoutError as e:
            raise LaunchTimeoutError(instance_id, launch.timeout) from e

    async def _cleanup(self, instance_id: str, reason: str) -> None:
        log.warning(
            "Terminating instance {instance_id} after failed launch: {reason}",
            instance_id=instance_id,
            reason=reason,
        )
        try:
            await self.terminate(instance_id, force=True)
        except Exception as e:
            log.error(
                "Cleanup of instance {instance_id} failed, it may need manual termination: {error}",
                instance_id=instance_id,
                error=e,
            )

    # -------------------------------------------------------------------------
    # Terminate
    # -------------------------------------------------------------------------

    async def terminate(self, instance_id: str, *, force: bool = False) -> None:
        """Request termination. Does not wait for the instance to stop.

        With ``force``, termination protection is switched off first.
        """
        if not instance_id:
            raise ValueError("instance ID cannot be empty")

        async with self.ec2() as ec2:
            if force:
                try:
                    await ec2.modify_instance_attribute(
                        InstanceId=instance_id,
                        DisableApiTermination={"Value": False},
                    )
                except ClientError as e:
                    raise CloudAPIError("modify_instance_attribute", instance_id, e) from e
            try:
                await ec2.terminate_instances(InstanceIds=[instance_id])
            except ClientError as e:
                raise CloudAPIError("terminate_instances", instance_id, e) from e

        log.info("Termination requested for {instance_id}", instance_id=instance_id)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    async def _describe(self, filters: list[dict[str, Any]], target: str) -> list[Instance]:
        instances: list[Instance] = []
        try:
            async with self.ec2() as ec2:
                paginator = ec2.get_paginator("describe_instances")
                async for page in paginator.paginate(Filters=filters):
                    for reservation in page.get("Reservations", []):
                        instances.extend(Instance.from_ec2(raw) for raw in reservation.get("Instances", []))
        except ClientError as e:
            raise CloudAPIError("describe_instances", target, e) from e
        return instances

    async def find_by_pod(self, namespace: str, name: str) -> Instance:
        """Find the live instance tagged with this pod.

        More than one match breaks the one-instance-per-pod invariant; it
        is logged and the earliest launched instance is returned.
        """
        key = pod_key(namespace, name)
        instances = await self._describe(pod_filters(namespace, name), f"pod {key}")
        if not instances:
            raise InstanceNotFoundError(f"no instance found for pod {key}")

        instances.sort(key=launch_order)
        if len(instances) > 1:
            log.warning(
                "Found {n} instances for pod {pod}, using {instance_id}: {ids}",
                n=len(instances),
                pod=key,
                instance_id=instances[0].id,
                ids=", ".join(i.id for i in instances),
            )
        return instances[0]

    async def get_by_id(self, instance_id: str) -> Instance:
        if not instance_id:
            raise ValueError("instance ID cannot be empty")

        try:
            async with self.ec2() as ec2:
                response = await ec2.describe_instances(InstanceIds=[instance_id])
        except ClientError as e:
            if _error_code(e) == NOT_FOUND:
                raise InstanceNotFoundError(f"instance {instance_id} not found") from e
            raise CloudAPIError("describe_instances", instance_id, e) from e

        for reservation in response.get("Reservations", []):
            for raw in reservation.get("Instances", []):
                return Instance.from_ec2(raw)
        raise InstanceNotFoundError(f"instance {instance_id} not found")

    async def list_managed(self) -> list[Instance]:
        """All live instances carrying the ORCA provider tag, oldest first."""
        instances = await self._describe(managed_filters(), "managed instances")
        return sorted(instances, key=launch_order)
