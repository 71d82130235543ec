# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Names of the keys the stages publish into and resolve from the parameters registry.

The network stage publishes the VPC ID and one key per subnet, qualified by the subnet index.
The services stage publishes the DNS name of the internal load balancer.
"""

import re

KEY_RE = re.compile(r"^[a-zA-Z0-9_.\-/]+$")

VPC_ID_KEY = "VpcId"
PUBLIC_SUBNET_KEY = "PublicSubnet"
PRIVATE_SUBNET_KEY = "PrivateSubnet"
SERVICES_NLB_KEY = "ExpenseTrackerServicesNLB"


def subnet_key(layer_key: str, index: int) -> str:
    """
    Index-qualified key for a subnet, i.e. PrivateSubnet-0

    :param str layer_key: one of PUBLIC_SUBNET_KEY or PRIVATE_SUBNET_KEY
    :param int index: the 0-based index of the subnet in its layer
    """
    if layer_key not in [PUBLIC_SUBNET_KEY, PRIVATE_SUBNET_KEY]:
        raise ValueError(
            layer_key, "is not valid. Must be one of", [PUBLIC_SUBNET_KEY, PRIVATE_SUBNET_KEY]
        )
    if not isinstance(index, int) or index < 0:
        raise ValueError("Subnet index must be a positive integer. Got", index)
    return f"{layer_key}-{index}"


def public_subnets_keys(zones: int) -> list:
    return [subnet_key(PUBLIC_SUBNET_KEY, index) for index in range(zones)]


def private_subnets_keys(zones: int) -> list:
    return [subnet_key(PRIVATE_SUBNET_KEY, index) for index in range(zones)]


def network_keys(zones: int) -> list:
    """
    All the keys published by the network stage for a given number of availability zones.

    :param int zones:
    :return: the VPC ID key followed by the public then private subnets keys
    :rtype: list[str]
    """
    return [VPC_ID_KEY] + public_subnets_keys(zones) + private_subnets_keys(zones)
