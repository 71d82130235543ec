# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the StageXSettings class
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime as dt
from datetime import timezone

import boto3
import yaml
from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_stagex.common.aws import get_cross_role_session
from ecs_stagex.common.logging import LOG
from ecs_stagex.registry.ssm_registry import SsmRegistry
from ecs_stagex.specs import validate_config


def load_config_file(file_path: str) -> dict:
    """
    Loads the YAML configuration file and validates it against the StageX specification

    :param str file_path:
    :rtype: dict
    """
    with open(file_path) as config_fd:
        content = yaml.safe_load(config_fd.read())
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise TypeError(
            f"Configuration file {file_path} must be a mapping. Got", type(content)
        )
    return validate_config(content)


class StageXSettings:
    """
    Class to handle the settings to use for ECS StageX.

    Values set from the command line take precedence over the configuration file,
    which takes precedence over the defaults.
    """

    name_arg = "Name"
    stage_arg = "stage"
    command_arg = "command"

    region_arg = "RegionName"
    profile_arg = "ProfileName"
    arn_arg = "RoleArn"

    input_file_arg = "ConfigFile"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    default_format = "json"
    allowed_formats = ["json", "yaml"]

    vpc_cidr_arg = "VpcCidr"
    zones_count_arg = "ZonesCount"
    zones_arg = "Zones"
    subnet_mask_arg = "SubnetMask"

    registry_prefix_arg = "RegistryPrefix"
    wait_for_keys_arg = "WaitForKeys"
    vpc_cidr_lookup_arg = "ServicesVpcCidr"
    wait_arg = "Wait"
    rollback_arg = "DisableRollback"
    validate_arg = "ValidateTemplate"

    default_vpc_cidr = "10.0.0.0/16"
    default_zones_count = 2
    default_subnet_mask = 24
    default_log_retention = 14
    default_output_dir = f"/tmp/{int(dt.now(timezone.utc).timestamp())}"

    network_stage = "network"
    services_stage = "services"
    stages = [
        {
            "name": network_stage,
            "help": "VPC, subnets, Internet and NAT gateways. Publishes the VPC and subnets IDs",
        },
        {
            "name": services_stage,
            "help": "ECS Cluster, MySQL/Zookeeper/Kafka services and internal NLB. Requires the network stage",
        },
    ]

    deploy_arg = "up"
    render_arg = "render"
    plan_arg = "plan"
    active_commands = [
        {
            "name": deploy_arg,
            "help": "Generates the CFN template, Creates/Updates the stack in CFN",
        },
        {
            "name": render_arg,
            "help": "Generates the CFN template locally.",
        },
        {
            "name": plan_arg,
            "help": "Creates a change-set to show the diff prior to an update",
        },
    ]

    def __init__(self, content=None, session=None, **kwargs):
        """
        Class to init the configuration

        :param dict content: configuration content. Overrides the configuration file if set.
        :param boto3.session.Session session: session to use for all API calls
        """
        self.__args = deepcopy(kwargs)
        self.name = kwargs[self.name_arg]
        self.stage = set_else_none(self.stage_arg, kwargs)
        self.command = set_else_none(self.command_arg, kwargs)
        self.deploy = self.command == self.deploy_arg
        self.plan = self.command == self.plan_arg
        self.render = self.command == self.render_arg

        self.session = session if session else self.define_session(kwargs)
        self.aws_region = (
            kwargs[self.region_arg]
            if keyisset(self.region_arg, kwargs)
            else self.session.region_name
        )

        if content is not None:
            self.config = validate_config(deepcopy(content))
        elif keyisset(self.input_file_arg, kwargs):
            self.config = load_config_file(kwargs[self.input_file_arg])
        else:
            self.config = {}

        self.output_dir = set_else_none(
            self.output_dir_arg, kwargs, alt_value=self.default_output_dir
        )
        self.format = set_else_none(
            self.format_arg, kwargs, alt_value=self.default_format
        )
        self.set_network_settings(kwargs)
        self.set_registry_settings(kwargs)
        self.services_config = set_else_none("services", self.config, alt_value={})
        self.database_secret_arn = None
        if keyisset("secrets", self.config) and keyisset(
            "database", self.config["secrets"]
        ):
            self.database_secret_arn = self.config["secrets"]["database"]["arn"]
        self.log_retention = set_else_none(
            "retention_in_days",
            set_else_none("logging", self.config, alt_value={}),
            alt_value=self.default_log_retention,
        )
        self.services_vpc_cidr = set_else_none(self.vpc_cidr_lookup_arg, kwargs)

    def __repr__(self):
        return f"{self.name} - {self.stage}.{self.command}"

    @property
    def disable_rollback(self) -> bool:
        return bool(set_else_none(self.rollback_arg, self.__args, alt_value=False))

    @property
    def wait(self) -> bool:
        return bool(set_else_none(self.wait_arg, self.__args, alt_value=False))

    @property
    def validate(self) -> bool:
        return bool(set_else_none(self.validate_arg, self.__args, alt_value=False))

    @property
    def network_stack_name(self) -> str:
        return f"{self.name}-{self.network_stage}"

    @property
    def services_stack_name(self) -> str:
        return f"{self.name}-{self.services_stage}"

    def define_session(self, kwargs):
        """
        Creates the boto3 session from the profile and region, assuming the role if set.
        """
        session = boto3.session.Session(
            profile_name=set_else_none(self.profile_arg, kwargs),
            region_name=set_else_none(self.region_arg, kwargs),
        )
        if keyisset(self.arn_arg, kwargs):
            LOG.info(f"{self.name} - Using role {kwargs[self.arn_arg]}")
            session = get_cross_role_session(
                session,
                kwargs[self.arn_arg],
                region_name=set_else_none(self.region_arg, kwargs),
            )
        return session

    def set_network_settings(self, kwargs):
        """
        Sets the VPC CIDR, number of zones and subnets mask.
        """
        network_config = set_else_none("network", self.config, alt_value={})
        self.vpc_name = set_else_none("name", network_config, alt_value=self.name)
        self.vpc_cidr = set_else_none(
            self.vpc_cidr_arg,
            kwargs,
            alt_value=set_else_none(
                "cidr", network_config, alt_value=self.default_vpc_cidr
            ),
        )
        self.subnet_mask = set_else_none(
            self.subnet_mask_arg,
            kwargs,
            alt_value=set_else_none(
                "subnet_mask", network_config, alt_value=self.default_subnet_mask
            ),
        )
        self.aws_azs = set_else_none(
            self.zones_arg,
            kwargs,
            alt_value=set_else_none("availability_zones", network_config),
        )
        zones_count = kwargs.get(self.zones_count_arg)
        if zones_count is None:
            zones_count = network_config.get("zones")
        if zones_count is None and self.aws_azs:
            zones_count = len(self.aws_azs)
        self.zones = zones_count if zones_count is not None else self.default_zones_count
        LOG.debug(
            f"{self.name} - VPC {self.vpc_cidr} over {self.zones} zones with /{self.subnet_mask} subnets"
        )

    def set_registry_settings(self, kwargs):
        registry_config = set_else_none("registry", self.config, alt_value={})
        self.registry_prefix = set_else_none(
            self.registry_prefix_arg,
            kwargs,
            alt_value=set_else_none("prefix", registry_config, alt_value=""),
        )
        self.wait_for_keys = set_else_none(
            self.wait_for_keys_arg,
            kwargs,
            alt_value=set_else_none("wait_for_keys", registry_config, alt_value=0),
        )

    def get_registry(self) -> SsmRegistry:
        """
        The SSM Parameter Store registry in the account/region of the session.
        """
        return SsmRegistry(
            session=self.session,
            prefix=self.registry_prefix,
            wait_timeout=self.wait_for_keys,
        )
