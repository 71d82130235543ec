# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to look up the properties of an existing VPC
"""

from boto3.session import Session
from botocore.exceptions import ClientError
from compose_x_common.compose_x_common import keyisset

from ecs_stagex.common.logging import LOG


def lookup_vpc_cidr(vpc_id: str, session: Session = None) -> str:
    """
    Retrieves the primary CIDR block of the VPC

    :param str vpc_id:
    :param boto3.session.Session session:
    :rtype: str
    :raises LookupError: if the VPC does not exist
    """
    if session is None:
        session = Session()
    client = session.client("ec2")
    try:
        vpcs_r = client.describe_vpcs(VpcIds=[vpc_id])
    except ClientError as error:
        if error.response["Error"]["Code"] == "InvalidVpcID.NotFound":
            raise LookupError(f"VPC {vpc_id} not found")
        LOG.error(error)
        raise
    if not keyisset("Vpcs", vpcs_r):
        raise LookupError(f"VPC {vpc_id} not found")
    cidr = vpcs_r["Vpcs"][0]["CidrBlock"]
    LOG.info(f"VPC {vpc_id} - CIDR {cidr}")
    return cidr
