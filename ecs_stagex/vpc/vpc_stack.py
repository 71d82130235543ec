# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the network stage stack
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_stagex.common.settings import StageXSettings

from troposphere import Ref

from ecs_stagex.common import build_template
from ecs_stagex.common.logging import LOG
from ecs_stagex.common.stacks import StageStack
from ecs_stagex.exceptions import NetworkValidationError
from ecs_stagex.registry.registry_params import (
    PRIVATE_SUBNET_KEY,
    PUBLIC_SUBNET_KEY,
    VPC_ID_KEY,
    subnet_key,
)
from ecs_stagex.vpc.vpc_maths import get_subnet_layers
from ecs_stagex.vpc.vpc_subnets import add_private_subnets, add_public_subnets
from ecs_stagex.vpc.vpc_template import add_vpc_core


class NetworkStack(StageStack):
    """
    The network stage: VPC, one public and one private subnet per AZ, the Internet Gateway and
    one NAT Gateway per AZ. Publishes the VPC ID and the subnets IDs.

    :ivar dict layers: the CIDRs of the public and private subnets
    :ivar troposphere.ec2.VPC vpc:
    :ivar troposphere.ec2.InternetGateway igw:
    :ivar list[troposphere.ec2.Subnet] public_subnets:
    :ivar list[troposphere.ec2.Subnet] private_subnets:
    :ivar list[troposphere.ec2.NatGateway] nat_gateways:
    """

    def __init__(
        self,
        name,
        vpc_cidr,
        zones,
        subnet_mask=24,
        azs=None,
        vpc_name=None,
        key_prefix=None,
    ):
        if azs and len(azs) != zones:
            raise NetworkValidationError(
                f"{len(azs)} availability zones were given for {zones} zones", azs
            )
        self.layers = get_subnet_layers(vpc_cidr, zones, subnet_mask)
        self.zones = zones
        self.vpc_cidr = vpc_cidr
        self.vpc_name = vpc_name if vpc_name else name
        template = build_template(
            f"Network stage {self.vpc_name} - {vpc_cidr} over {zones} AZs"
        )
        super().__init__(name, template, key_prefix=key_prefix)
        self.vpc, self.igw, self.igw_attachment = add_vpc_core(
            template, vpc_cidr, self.vpc_name
        )
        (
            self.public_route_table,
            self.public_subnets,
            self.nat_gateways,
        ) = add_public_subnets(
            template, self.vpc, self.igw, self.igw_attachment, self.layers, self.vpc_name, azs
        )
        self.private_route_tables, self.private_subnets = add_private_subnets(
            template, self.vpc, self.layers, self.nat_gateways, self.vpc_name, azs
        )
        self.publish_network_ids()

    def publish_network_ids(self):
        """
        Publishes the VPC ID and each subnet ID under their index-qualified key
        """
        self.publish(VPC_ID_KEY, Ref(self.vpc), description=f"VPC ID of {self.vpc_name}")
        for index, subnet in enumerate(self.public_subnets):
            self.publish(subnet_key(PUBLIC_SUBNET_KEY, index), Ref(subnet))
        for index, subnet in enumerate(self.private_subnets):
            self.publish(subnet_key(PRIVATE_SUBNET_KEY, index), Ref(subnet))
        LOG.info(f"{self.name} - publishes {len(self.published)} registry keys")


def create_network_stack(settings: StageXSettings) -> NetworkStack:
    """
    Creates the network stage stack from the execution settings

    :param StageXSettings settings:
    :rtype: NetworkStack
    """
    LOG.info(
        f"{settings.network_stack_name} - VPC {settings.vpc_cidr}, {settings.zones} AZs, /{settings.subnet_mask} subnets"
    )
    return NetworkStack(
        settings.network_stack_name,
        settings.vpc_cidr,
        settings.zones,
        subnet_mask=settings.subnet_mask,
        azs=settings.aws_azs,
        vpc_name=settings.vpc_name,
        key_prefix=settings.registry_prefix,
    )
