# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from jsonschema.exceptions import ValidationError
from pytest import raises

from ecs_stagex.common.settings import StageXSettings, load_config_file
from ecs_stagex.registry.ssm_registry import SsmRegistry
from ecs_stagex.services.services_stack import create_services_stack
from ecs_stagex.vpc.vpc_stack import create_network_stack

CONFIG = """---
network:
  cidr: 172.20.0.0/16
  zones: 3
  subnet_mask: 22
registry:
  prefix: /expense/
  wait_for_keys: 60
logging:
  retention_in_days: 30
services:
  kafka:
    desired_count: 4
"""


def test_default_settings(session):
    settings = StageXSettings(session=session, Name="expense")
    assert settings.vpc_cidr == "10.0.0.0/16"
    assert settings.zones == 2
    assert settings.subnet_mask == 24
    assert settings.registry_prefix == ""
    assert settings.log_retention == 14
    assert settings.network_stack_name == "expense-network"
    assert settings.services_stack_name == "expense-services"
    assert settings.aws_region == "eu-west-1"
    assert settings.output_dir.startswith("/tmp/")
    assert settings.output_dir[len("/tmp/") :].isdigit()


def test_config_file(session, tmp_path):
    config_path = tmp_path / "stagex.yaml"
    config_path.write_text(CONFIG)
    settings = StageXSettings(
        session=session, Name="expense", ConfigFile=str(config_path)
    )
    assert settings.vpc_cidr == "172.20.0.0/16"
    assert settings.zones == 3
    assert settings.subnet_mask == 22
    assert settings.registry_prefix == "/expense/"
    assert settings.wait_for_keys == 60
    assert settings.log_retention == 30
    assert settings.services_config == {"kafka": {"desired_count": 4}}
    registry = settings.get_registry()
    assert isinstance(registry, SsmRegistry)
    assert registry.wait_timeout == 60


def test_cli_arguments_override_config(session, tmp_path):
    config_path = tmp_path / "stagex.yaml"
    config_path.write_text(CONFIG)
    settings = StageXSettings(
        session=session,
        Name="expense",
        ConfigFile=str(config_path),
        VpcCidr="10.8.0.0/16",
        ZonesCount=1,
    )
    assert settings.vpc_cidr == "10.8.0.0/16"
    assert settings.zones == 1


def test_zones_from_availability_zones(session):
    settings = StageXSettings(
        session=session,
        Name="expense",
        content={"network": {"availability_zones": ["eu-west-1a", "eu-west-1c"]}},
    )
    assert settings.zones == 2
    stack = create_network_stack(settings)
    resources = stack.stack_template.to_dict()["Resources"]
    assert resources["PrivateSubnet1"]["Properties"]["AvailabilityZone"] == "eu-west-1c"


def test_invalid_config(session, tmp_path):
    with raises(ValidationError):
        StageXSettings(
            session=session, Name="expense", content={"network": {"cidr": 10}}
        )
    with raises(ValidationError):
        StageXSettings(session=session, Name="expense", content={"clusters": {}})
    with raises(ValidationError):
        StageXSettings(
            session=session,
            Name="expense",
            content={"services": {"kafka": {"desired_count": 0}}},
        )
    config_path = tmp_path / "list.yaml"
    config_path.write_text("- network\n")
    with raises(TypeError):
        load_config_file(str(config_path))


def test_services_stack_from_settings(session, network_registry):
    settings = StageXSettings(
        session=session,
        Name="expense",
        ServicesVpcCidr="10.0.0.0/16",
        content={"services": {"zookeeper": {"desired_count": 5}}},
    )
    stack = create_services_stack(settings, registry=network_registry)
    assert stack.name == "expense-services"
    resources = stack.stack_template.to_dict()["Resources"]
    assert resources["ZookeeperService"]["Properties"]["DesiredCount"] == 5
