from __future__ import annotations

from typing import Any

import pytest

from orca.config import OrcaConfig, parse_config
from orca.instances import build_selector
from orca.provider import OrcaProvider, PodRegistry
from orca.providers.aws import InstanceClient
from tests.fakes import FakeEC2, FakeSSM, ec2_factory, ssm_factory


def raw_config(**sections: Any) -> dict[str, Any]:
    """Minimal valid raw config with per-section overrides."""
    raw: dict[str, Any] = {
        "aws": {
            "region": "us-west-2",
            "subnet_id": "subnet-0abc",
            "security_group_ids": ["sg-0abc"],
            "ami": "ami-default",
        },
        "node": {"name": "orca-aws", "cpu": "1000", "memory": "4Ti", "pods": "1000"},
        "instances": {
            "selection_mode": "auto",
            "templates": {
                "inference": {"instance_type": "g6.2xlarge", "launch_type": "spot"},
                "training": {"instance_type": "p5.48xlarge", "max_spot_price": "40.00"},
            },
        },
        "launch": {"poll_interval": 0.0, "timeout": 5.0},
    }
    for section, values in sections.items():
        raw[section] = {**raw.get(section, {}), **values}
    return raw


@pytest.fixture
def config() -> OrcaConfig:
    return parse_config(raw_config())


@pytest.fixture
def ec2() -> FakeEC2:
    return FakeEC2()


@pytest.fixture
def ssm() -> FakeSSM:
    return FakeSSM({"/orca/ami/default": "ami-from-ssm"})


@pytest.fixture
def client(ec2: FakeEC2, ssm: FakeSSM, config: OrcaConfig) -> InstanceClient:
    return InstanceClient(ec2_factory(ec2), ssm_factory(ssm), config)


@pytest.fixture
def provider(config: OrcaConfig, client: InstanceClient) -> OrcaProvider:
    return OrcaProvider(
        config,
        build_selector(config.instances),
        client,
        PodRegistry(),
        version="0.1.0-test",
    )
