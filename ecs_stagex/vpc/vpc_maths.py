# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Public/Private subnets calculator for the 2-layers VPC
"""

import ipaddress
from itertools import islice

from ecs_stagex.exceptions import NetworkValidationError
from ecs_stagex.vpc.vpc_params import (
    MAX_PREFIX,
    MIN_PREFIX,
    PRIVATE_LAYER,
    PUBLIC_LAYER,
)


def get_vpc_network(cidr):
    """
    Parses the VPC CIDR

    :param str cidr: CIDR of the VPC, i.e. 10.0.0.0/16
    :rtype: ipaddress.IPv4Network
    :raises NetworkValidationError: if the CIDR is not a valid VPC CIDR
    """
    try:
        vpc_net = ipaddress.IPv4Network(f"{cidr}")
    except ValueError as error:
        raise NetworkValidationError("Not a valid IPv4 CIDR notation", cidr, error)
    if not (MIN_PREFIX <= vpc_net.prefixlen <= MAX_PREFIX):
        raise NetworkValidationError(
            f"VPC CIDR {cidr} prefix must be between /{MIN_PREFIX} and /{MAX_PREFIX}"
        )
    return vpc_net


def validate_subnets_layout(vpc_net, zones, subnet_mask):
    """
    Checks that the VPC can hold one public and one private subnet per zone with the given mask.

    :param ipaddress.IPv4Network vpc_net:
    :param int zones:
    :param int subnet_mask:
    :raises NetworkValidationError:
    """
    if not isinstance(zones, int) or isinstance(zones, bool) or zones < 1:
        raise NetworkValidationError("The number of zones must be at least 1. Got", zones)
    if not isinstance(subnet_mask, int) or isinstance(subnet_mask, bool):
        raise NetworkValidationError("Subnet mask must be an integer. Got", subnet_mask)
    if not (vpc_net.prefixlen <= subnet_mask <= MAX_PREFIX):
        raise NetworkValidationError(
            f"Subnet mask /{subnet_mask} must be between /{vpc_net.prefixlen} and /{MAX_PREFIX}"
        )
    available = pow(2, subnet_mask - vpc_net.prefixlen)
    required = 2 * zones
    if required > available:
        raise NetworkValidationError(
            f"{vpc_net} can only fit {available} /{subnet_mask} subnets. "
            f"{required} are required for {zones} zones"
        )


def get_subnet_layers(cidr, zones, subnet_mask=24):
    """
    Carves the VPC CIDR into the public subnets (one per zone) followed by the private subnets (one per zone).

    :param str cidr: the VPC CIDR
    :param int zones: number of availability zones
    :param int subnet_mask: prefix length of every subnet
    :return: the CIDRs of the subnets for each layer, ordered by zone
    :rtype: dict
    """
    vpc_net = get_vpc_network(cidr)
    validate_subnets_layout(vpc_net, zones, subnet_mask)
    subnets = [
        f"{subnet}"
        for subnet in islice(vpc_net.subnets(new_prefix=subnet_mask), 2 * zones)
    ]
    return {PUBLIC_LAYER: subnets[:zones], PRIVATE_LAYER: subnets[zones:]}
