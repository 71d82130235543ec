# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the internal Network Load Balancer, its listeners and target groups.
"""

from __future__ import annotations

from troposphere import Ref, Sub, Tags
from troposphere.elasticloadbalancingv2 import (
    Action,
    Listener,
    LoadBalancer,
    LoadBalancerAttributes,
    TargetGroup,
    TargetGroupAttribute,
)

from ecs_stagex.common.logging import LOG
from ecs_stagex.services import metadata
from ecs_stagex.services.services_params import NLB_T


def add_network_load_balancer(template, subnets) -> LoadBalancer:
    """
    Internal NLB in the given subnets

    :param troposphere.Template template:
    :param list subnets: the private subnets IDs
    """
    return LoadBalancer(
        NLB_T,
        template=template,
        IpAddressType="ipv4",
        Type="network",
        Scheme="internal",
        Subnets=subnets,
        LoadBalancerAttributes=[
            LoadBalancerAttributes(
                Key="load_balancing.cross_zone.enabled", Value="true"
            )
        ],
        Tags=Tags(Name=Sub(f"${{AWS::StackName}}{NLB_T}")),
        Metadata=metadata,
    )


def add_target_group(template, workload, vpc_id) -> TargetGroup:
    """
    IP target group for the workload container port. The ECS service registers the tasks into it.
    """
    protocol = workload.protocol.upper()
    return TargetGroup(
        f"{workload.title}TargetGroup",
        template=template,
        Port=workload.container_port,
        Protocol=protocol,
        TargetType="ip",
        VpcId=vpc_id,
        HealthCheckEnabled=True,
        HealthCheckProtocol=protocol,
        HealthCheckIntervalSeconds=30,
        HealthyThresholdCount=3,
        UnhealthyThresholdCount=3,
        TargetGroupAttributes=[
            TargetGroupAttribute(
                Key="deregistration_delay.timeout_seconds", Value="30"
            )
        ],
    )


def add_listener(template, nlb, workload, target_group) -> Listener:
    """
    Listener on the workload port, forwarding to its target group
    """
    LOG.debug(f"{nlb.title} - {workload.protocol}/{workload.container_port} -> {workload.name}")
    return Listener(
        f"{workload.title}Listener",
        template=template,
        LoadBalancerArn=Ref(nlb),
        Port=workload.container_port,
        Protocol=workload.protocol.upper(),
        DefaultActions=[Action(Type="forward", TargetGroupArn=Ref(target_group))],
    )
