# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the VPC core resources
"""

from troposphere import Ref, Tags
from troposphere.ec2 import VPC as VPCType
from troposphere.ec2 import InternetGateway, VPCGatewayAttachment

from ecs_stagex.vpc import metadata
from ecs_stagex.vpc.vpc_params import IGW_ATTACHMENT_T, IGW_T, VPC_T


def add_vpc_core(template, vpc_cidr, vpc_name):
    """
    Function to create the core resources of the VPC
    and add them to the network template

    :param troposphere.Template template: Network Template()
    :param str vpc_cidr: CIDR of the VPC i.e. 10.0.0.0/16
    :param str vpc_name: Name of the VPC

    :return: tuple() with the vpc, igw and the igw attachment objects
    """
    vpc = VPCType(
        VPC_T,
        template=template,
        CidrBlock=vpc_cidr,
        EnableDnsHostnames=True,
        EnableDnsSupport=True,
        Tags=Tags(Name=vpc_name, EnvironmentName=vpc_name),
        Metadata=metadata,
    )
    igw = InternetGateway(
        IGW_T,
        template=template,
        Tags=Tags(Name=f"{vpc_name}-igw"),
    )
    attachment = VPCGatewayAttachment(
        IGW_ATTACHMENT_T,
        template=template,
        InternetGatewayId=Ref(igw),
        VpcId=Ref(vpc),
        Metadata=metadata,
    )
    return vpc, igw, attachment
