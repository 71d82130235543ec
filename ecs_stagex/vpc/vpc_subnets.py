# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to add the two VPC layer type subnets:

* Public
* Private

RTB -> Route Table

Public subnet type: All subnets use the same RTB, route to 0.0.0.0/0 via InternetGateway.
Each public subnet hosts the NAT Gateway of its AZ.
Private subnet type: Each subnet has its own RTB, each RTB points to the NAT Gateway in its
respective AZ
"""

from troposphere import AWS_REGION, GetAtt, GetAZs, Ref, Select, Tags
from troposphere.ec2 import (
    EIP,
    NatGateway,
    Route,
    RouteTable,
    Subnet,
    SubnetRouteTableAssociation,
)

from ecs_stagex.vpc import metadata
from ecs_stagex.vpc.vpc_params import (
    DEFAULT_ROUTE,
    PRIVATE_LAYER,
    PUBLIC_LAYER,
    PUBLIC_RTB_T,
)


def define_availability_zone(index, azs=None):
    """
    The AZ for the subnet at index. Uses the AZ name if explicitly given, else the index-th AZ of the region.

    :param int index:
    :param list[str] azs:
    """
    if azs:
        return azs[index]
    return Select(index, GetAZs(Ref(AWS_REGION)))


def add_public_subnets(template, vpc, igw, igw_attachment, layers, vpc_name, azs=None):
    """
    Function to add public subnets for the VPC, and one NAT Gateway in each of them

    :param troposphere.Template template: Network Template()
    :param troposphere.ec2.VPC vpc: Vpc() for Ref()
    :param troposphere.ec2.InternetGateway igw: internet gateway to route to
    :param troposphere.ec2.VPCGatewayAttachment igw_attachment: the IGW attachment the route depends on
    :param dict layers: layers of subnets
    :param str vpc_name:
    :param list azs: AZ names to use

    :return: tuple() rtb, list of subnets, list of nats
    """
    rtb = RouteTable(
        PUBLIC_RTB_T,
        template=template,
        VpcId=Ref(vpc),
        Tags=Tags(Name=f"{vpc_name}-public", Usage=PUBLIC_LAYER),
        Metadata=metadata,
    )
    Route(
        "PublicDefaultRoute",
        template=template,
        DependsOn=[igw_attachment.title],
        GatewayId=Ref(igw),
        RouteTableId=Ref(rtb),
        DestinationCidrBlock=DEFAULT_ROUTE,
    )
    subnets = []
    nats = []
    for index, subnet_cidr in enumerate(layers[PUBLIC_LAYER]):
        subnet = Subnet(
            f"PublicSubnet{index}",
            template=template,
            CidrBlock=subnet_cidr,
            VpcId=Ref(vpc),
            AvailabilityZone=define_availability_zone(index, azs),
            MapPublicIpOnLaunch=True,
            Tags=Tags(Name=f"{vpc_name}-public-{index}", Usage=PUBLIC_LAYER),
            Metadata=metadata,
        )
        SubnetRouteTableAssociation(
            f"PublicSubnetRtbAssoc{index}",
            template=template,
            RouteTableId=Ref(rtb),
            SubnetId=Ref(subnet),
        )
        eip = EIP(
            f"NatGatewayEip{index}",
            template=template,
            DependsOn=[igw_attachment.title],
            Domain="vpc",
        )
        nat = NatGateway(
            f"NatGatewayAz{index}",
            template=template,
            AllocationId=GetAtt(eip, "AllocationId"),
            SubnetId=Ref(subnet),
            Tags=Tags(Name=f"{vpc_name}-nat-{index}"),
            Metadata=metadata,
        )
        subnets.append(subnet)
        nats.append(nat)
    return rtb, subnets, nats


def add_private_subnets(template, vpc, layers, nats, vpc_name, azs=None):
    """
    Function to add the private subnets to the VPC. Each gets its own RTB routing to the NAT of its AZ.

    :param troposphere.Template template: Network Template()
    :param troposphere.ec2.VPC vpc: Vpc() for Ref()
    :param dict layers: layers of subnets
    :param list nats: list of NatGateway(), ordered by AZ
    :param str vpc_name:
    :param list azs: AZ names to use

    :returns: tuple() list of rtb, list of subnets
    """
    if len(nats) != len(layers[PRIVATE_LAYER]):
        raise ValueError(
            "There must be one NAT Gateway per private subnet. Got",
            len(nats),
            "for",
            len(layers[PRIVATE_LAYER]),
        )
    subnets = []
    rtbs = []
    for index, (subnet_cidr, nat) in enumerate(zip(layers[PRIVATE_LAYER], nats)):
        subnet = Subnet(
            f"PrivateSubnet{index}",
            template=template,
            CidrBlock=subnet_cidr,
            VpcId=Ref(vpc),
            AvailabilityZone=define_availability_zone(index, azs),
            Tags=Tags(Name=f"{vpc_name}-private-{index}", Usage=PRIVATE_LAYER),
            Metadata=metadata,
        )
        rtb = RouteTable(
            f"PrivateRtb{index}",
            template=template,
            VpcId=Ref(vpc),
            Tags=Tags(Name=f"{vpc_name}-private-{index}", Usage=PRIVATE_LAYER),
            Metadata=metadata,
        )
        Route(
            f"PrivateDefaultRoute{index}",
            template=template,
            NatGatewayId=Ref(nat),
            RouteTableId=Ref(rtb),
            DestinationCidrBlock=DEFAULT_ROUTE,
        )
        SubnetRouteTableAssociation(
            f"PrivateSubnetRtbAssoc{index}",
            template=template,
            RouteTableId=Ref(rtb),
            SubnetId=Ref(subnet),
            Metadata=metadata,
        )
        rtbs.append(rtb)
        subnets.append(subnet)
    return rtbs, subnets
