"""TOML-based ORCA configuration.

Loads ``orca.toml`` into immutable dataclasses and validates it. All
validation failures raise :class:`ConfigurationError`; they are fatal
at start-up and never recovered at runtime.

Example::

    [aws]
    region = "us-west-2"
    subnet_id = "subnet-0abc"
    security_group_ids = ["sg-0abc"]

    [node]
    name = "orca-aws"
    cpu = "1000"
    memory = "4Ti"
    pods = "1000"

    [instances]
    selection_mode = "template"

    [instances.templates.inference]
    instance_type = "g6.2xlarge"
    launch_type = "spot"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, TypeAlias, TypeVar

from kubernetes.utils.quantity import parse_quantity

from orca.constants import (
    GPU_RESOURCE,
    LAUNCH_POLL_INTERVAL,
    LAUNCH_TIMEOUT,
    LaunchType,
    SelectionMode,
)
from orca.core.exceptions import ConfigurationError
from orca.observability.logging import LogConfig

RawConfig: TypeAlias = dict[str, Any]

T = TypeVar("T")

DEFAULT_CONFIG_PATH = Path("/etc/orca/orca.toml")

_TAINT_EFFECTS = ("NoSchedule", "PreferNoSchedule", "NoExecute")


# =============================================================================
# Sections
# =============================================================================


@dataclass(frozen=True, slots=True)
class AWS:
    """AWS connection and placement settings.

    Args:
        region: AWS region for instances.
        subnet_id: Subnet every instance is launched into.
        security_group_ids: Security groups attached to every instance.
        ami: Default AMI when the pod does not name one.
        ami_parameter: SSM parameter resolving to an AMI ID, used when
            neither the pod nor ``ami`` provides one.
        endpoint_url: Endpoint override (LocalStack).
        access_key_id: Static credentials; the default chain is used if unset.
        secret_access_key: Static credentials secret.
    """

    region: str = "us-east-1"
    subnet_id: str | None = None
    security_group_ids: tuple[str, ...] = ()
    ami: str | None = None
    ami_parameter: str | None = None
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None


@dataclass(frozen=True, slots=True)
class Taint:
    key: str
    value: str = ""
    effect: str = "NoSchedule"


@dataclass(frozen=True, slots=True)
class NodeConfig:
    """Static description of the virtual node."""

    name: str
    cpu: str
    memory: str
    pods: str
    gpu: str | None = None
    operating_system: str = "Linux"
    labels: dict[str, str] = field(default_factory=dict)
    taints: tuple[Taint, ...] = ()

    def capacity(self) -> dict[str, str]:
        """Resource capacity advertised by the node, as quantity strings."""
        resources = {"cpu": self.cpu, "memory": self.memory, "pods": self.pods}
        if self.gpu:
            resources[GPU_RESOURCE] = self.gpu
        return resources

    def allocatable(self) -> dict[str, str]:
        return self.capacity()


@dataclass(frozen=True, slots=True)
class WorkloadTemplate:
    instance_type: str = ""
    launch_type: str | None = None
    max_spot_price: str | None = None


@dataclass(frozen=True, slots=True)
class CPUBucket:
    """Ceiling of one CPU/memory size class used by automatic selection."""

    vcpus: int
    memory_gib: int
    instance_type: str


DEFAULT_CPU_BUCKETS: tuple[CPUBucket, ...] = (
    CPUBucket(2, 4, "t3.small"),
    CPUBucket(4, 8, "t3.large"),
    CPUBucket(8, 16, "c7i.2xlarge"),
    CPUBucket(16, 32, "c7i.4xlarge"),
    CPUBucket(32, 64, "c7i.8xlarge"),
    CPUBucket(64, 128, "c7i.16xlarge"),
)

DEFAULT_GPU_INSTANCE_TYPES: dict[int, str] = {
    1: "g5.xlarge",  # 1x A10G
    2: "g5.2xlarge",
    4: "g5.12xlarge",  # 4x A10G
    8: "p5.48xlarge",  # 8x H100
}


@dataclass(frozen=True, slots=True)
class AutoPolicy:
    """Tables used by automatic instance selection.

    ``cpu_buckets`` must be ordered ascending in both dimensions and
    ``gpu_instance_types`` must contain an entry for a single GPU, which
    is the fallback for counts with no exact entry.
    """

    cpu_buckets: tuple[CPUBucket, ...] = DEFAULT_CPU_BUCKETS
    gpu_instance_types: dict[int, str] = field(
        default_factory=lambda: dict(DEFAULT_GPU_INSTANCE_TYPES),
    )


@dataclass(frozen=True, slots=True)
class InstancesConfig:
    selection_mode: SelectionMode = SelectionMode.EXPLICIT
    default_launch_type: LaunchType = LaunchType.ON_DEMAND
    templates: dict[str, WorkloadTemplate] = field(default_factory=dict)
    allowed_instance_types: frozenset[str] = frozenset()
    max_spot_prices: dict[str, str] = field(default_factory=dict)
    auto: AutoPolicy = field(default_factory=AutoPolicy)


@dataclass(frozen=True, slots=True)
class LaunchConfig:
    """Bounded wait for a launched instance to reach ``running`` (seconds)."""

    poll_interval: float = LAUNCH_POLL_INTERVAL
    timeout: float = LAUNCH_TIMEOUT


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass(frozen=True, slots=True)
class OrcaConfig:
    node: NodeConfig
    aws: AWS = field(default_factory=AWS)
    instances: InstancesConfig = field(default_factory=InstancesConfig)
    launch: LaunchConfig = field(default_factory=LaunchConfig)
    logging: LogConfig = field(default_factory=LogConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# =============================================================================
# Loading
# =============================================================================


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        raise ConfigurationError(f"config file not found: {path}")
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"failed to parse {path}: {e}") from e


def load_config(path: Path | None = None) -> OrcaConfig:
    """Read and validate the TOML file at ``path``."""
    return parse_config(_read_toml(path or DEFAULT_CONFIG_PATH))


def parse_config(raw: RawConfig) -> OrcaConfig:
    """Validate a raw config mapping and fill in defaults."""
    raw = dict(raw)
    return OrcaConfig(
        aws=_build_aws(raw.get("aws", {})),
        node=_build_node(raw.get("node", {})),
        instances=_build_instances(raw.get("instances", {})),
        launch=_build_launch(raw.get("launch", {})),
        logging=_build_section(LogConfig, "logging", raw.get("logging", {})),
        server=_build_section(ServerConfig, "server", raw.get("server", {})),
    )


def _build_section(cls: type[T], section: str, raw: RawConfig) -> T:
    try:
        return cls(**raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid [{section}] section: {e}") from e


def _build_aws(raw: RawConfig) -> AWS:
    raw = dict(raw)
    raw["security_group_ids"] = tuple(raw.get("security_group_ids", ()))
    aws = _build_section(AWS, "aws", raw)
    if not aws.region:
        raise ConfigurationError("aws.region is required")
    if bool(aws.access_key_id) != bool(aws.secret_access_key):
        raise ConfigurationError("aws.access_key_id and aws.secret_access_key must be set together")
    return aws


def _build_node(raw: RawConfig) -> NodeConfig:
    raw = dict(raw)
    for key in ("name", "cpu", "memory", "pods"):
        if not raw.get(key):
            raise ConfigurationError(f"node.{key} is required")

    for key in ("cpu", "memory", "pods", "gpu"):
        if raw.get(key) is None:
            continue
        raw[key] = str(raw[key])
        try:
            parse_quantity(raw[key])
        except ValueError as e:
            raise ConfigurationError(f"node.{key} is not a valid quantity: {raw[key]!r}") from e

    taints = []
    for t in raw.pop("taints", ()):
        taint = _build_section(Taint, "node.taints", t)
        if taint.effect not in _TAINT_EFFECTS:
            raise ConfigurationError(
                f"node taint {taint.key} has invalid effect {taint.effect!r}; "
                f"valid: {', '.join(_TAINT_EFFECTS)}"
            )
        taints.append(taint)

    if not raw.get("operating_system"):
        raw["operating_system"] = "Linux"
    return _build_section(NodeConfig, "node", {**raw, "taints": tuple(taints)})


def _launch_type(value: str, where: str) -> LaunchType:
    try:
        return LaunchType(value)
    except ValueError:
        raise ConfigurationError(f"{where} must be on-demand or spot, got {value!r}") from None


def _spot_price(value: Any, where: str) -> str:
    text = str(value)
    try:
        price = float(text)
    except ValueError:
        raise ConfigurationError(f"{where} must be a number, got {text!r}") from None
    if price <= 0:
        raise ConfigurationError(f"{where} must be positive, got {text!r}")
    return text


def _build_instances(raw: RawConfig) -> InstancesConfig:
    raw = dict(raw)

    mode_raw = raw.pop("selection_mode", SelectionMode.EXPLICIT.value) or SelectionMode.EXPLICIT.value
    try:
        mode = SelectionMode(mode_raw)
    except ValueError:
        raise ConfigurationError(
            f"instances.selection_mode must be explicit, template, or auto, got {mode_raw!r}"
        ) from None

    default_launch = _launch_type(
        raw.pop("default_launch_type", LaunchType.ON_DEMAND.value) or LaunchType.ON_DEMAND.value,
        "instances.default_launch_type",
    )

    templates: dict[str, WorkloadTemplate] = {}
    for name, t in raw.pop("templates", {}).items():
        template = _build_section(WorkloadTemplate, f"instances.templates.{name}", t)
        if template.launch_type is not None:
            _launch_type(template.launch_type, f"instances.templates.{name}.launch_type")
        if template.max_spot_price is not None:
            template = replace(
                template,
                max_spot_price=_spot_price(
                    template.max_spot_price, f"instances.templates.{name}.max_spot_price"
                ),
            )
        templates[name] = template

    max_spot_prices = {
        itype: _spot_price(price, f"instances.max_spot_prices.{itype}")
        for itype, price in raw.pop("max_spot_prices", {}).items()
    }

    allowed = frozenset(raw.pop("allowed_instance_types", ()))
    auto = _build_auto(raw.pop("auto", {}))

    if raw:
        raise ConfigurationError(f"unknown keys in [instances]: {', '.join(sorted(raw))}")

    return InstancesConfig(
        selection_mode=mode,
        default_launch_type=default_launch,
        templates=templates,
        allowed_instance_types=allowed,
        max_spot_prices=max_spot_prices,
        auto=auto,
    )


def _build_auto(raw: RawConfig) -> AutoPolicy:
    if not raw:
        return AutoPolicy()

    buckets = DEFAULT_CPU_BUCKETS
    if "cpu_buckets" in raw:
        buckets = tuple(
            _build_section(CPUBucket, "instances.auto.cpu_buckets", b)
            for b in raw["cpu_buckets"]
        )
    if not buckets:
        raise ConfigurationError("instances.auto.cpu_buckets must not be empty")
    for prev, cur in zip(buckets, buckets[1:], strict=False):
        if cur.vcpus < prev.vcpus or cur.memory_gib < prev.memory_gib:
            raise ConfigurationError(
                "instances.auto.cpu_buckets must be ordered ascending by vcpus and memory_gib "
                f"({prev.instance_type} precedes {cur.instance_type})"
            )

    gpu_types = dict(DEFAULT_GPU_INSTANCE_TYPES)
    if "gpu_instance_types" in raw:
        try:
            gpu_types = {int(k): str(v) for k, v in raw["gpu_instance_types"].items()}
        except ValueError as e:
            raise ConfigurationError(f"instances.auto.gpu_instance_types keys must be counts: {e}") from e
    if 1 not in gpu_types:
        raise ConfigurationError("instances.auto.gpu_instance_types needs an entry for 1 GPU")

    return AutoPolicy(cpu_buckets=buckets, gpu_instance_types=gpu_types)


def _build_launch(raw: RawConfig) -> LaunchConfig:
    launch = _build_section(LaunchConfig, "launch", raw)
    if launch.poll_interval < 0:
        raise ConfigurationError("launch.poll_interval must not be negative")
    if launch.timeout <= 0:
        raise ConfigurationError("launch.timeout must be positive")
    return launch
