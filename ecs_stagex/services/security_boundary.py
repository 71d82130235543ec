# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to define the security boundary of the services: which (protocol, port, source) can reach them.

Anything not explicitly allowed is denied inbound. All outbound traffic is allowed.
"""

from __future__ import annotations

from ipaddress import IPv4Address, IPv4Network

from troposphere import Ref, Tags
from troposphere.ec2 import SecurityGroup, SecurityGroupRule

from ecs_stagex.common.logging import LOG
from ecs_stagex.exceptions import WorkloadValidationError
from ecs_stagex.services.services_params import ALLOWED_PROTOCOLS, SG_T


def define_protocol(protocol: str) -> str:
    if not isinstance(protocol, str) or protocol.lower() not in ALLOWED_PROTOCOLS:
        raise ValueError(
            "Protocol", protocol, "is not valid. Must be one of", ALLOWED_PROTOCOLS
        )
    return protocol.lower()


def define_port(port) -> int:
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError("Port must be an integer. Got", type(port))
    if not (1 <= port < (2**16)):
        raise ValueError(f"port {port} is not between 1 and 65535")
    return port


class IngressRule:
    """
    Single allowed ingress triple.

    :ivar str protocol: tcp or udp
    :ivar int port:
    :ivar ipaddress.IPv4Network source:
    :ivar str description:
    """

    def __init__(self, protocol, port, source, description=None):
        self.protocol = define_protocol(protocol)
        self.port = define_port(port)
        try:
            self.source = IPv4Network(f"{source}")
        except ValueError as error:
            LOG.error(f"Faulty IP Address: {source}")
            raise ValueError("Not a valid IPv4 CIDR notation", source, error)
        self.description = (
            description
            if description
            else f"Allow {self.protocol}/{self.port} from {self.source}"
        )

    def __repr__(self):
        return f"{self.protocol}/{self.port} <- {self.source}"

    def matches(self, protocol: str, port: int, source: str) -> bool:
        """
        Whether the traffic matches that rule

        :param str protocol:
        :param int port:
        :param str source: the source IP address of the traffic
        """
        return (
            protocol.lower() == self.protocol
            and port == self.port
            and IPv4Address(source) in self.source
        )

    def to_cfn(self) -> SecurityGroupRule:
        return SecurityGroupRule(
            IpProtocol=self.protocol,
            FromPort=self.port,
            ToPort=self.port,
            CidrIp=f"{self.source}",
            Description=self.description,
        )


class SecurityBoundary:
    """
    A named traffic filtering policy, rendered as an EC2 Security Group.

    :ivar str name:
    :ivar list[IngressRule] ingress_rules:
    """

    def __init__(self, name, description=None, allow_all_outbound=True):
        self.name = name
        self.description = description if description else f"Security boundary {name}"
        self.allow_all_outbound = allow_all_outbound
        self.ingress_rules = []

    def __repr__(self):
        return f"{self.name} - {self.ingress_rules}"

    def add_ingress(self, protocol, port, source, description=None) -> IngressRule:
        """
        Allows the (protocol, port, source) triple

        :raises WorkloadValidationError: when the port/protocol is already allowed for another source
        """
        rule = IngressRule(protocol, port, source, description)
        for existing in self.ingress_rules:
            if existing.protocol == rule.protocol and existing.port == rule.port:
                raise WorkloadValidationError(
                    f"{self.name} - {rule.protocol}/{rule.port} is already allowed: {existing}"
                )
        self.ingress_rules.append(rule)
        return rule

    @property
    def ports(self) -> list:
        return sorted(rule.port for rule in self.ingress_rules)

    def permits_ingress(self, protocol, port, source) -> bool:
        """
        Whether the inbound traffic is allowed. Default is to deny.
        """
        return any(rule.matches(protocol, port, source) for rule in self.ingress_rules)

    def permits_egress(self, protocol, port, destination) -> bool:
        return self.allow_all_outbound

    def to_security_group(self, vpc_id) -> SecurityGroup:
        """
        Renders the boundary as a SecurityGroup

        :param vpc_id: the VPC ID
        :rtype: troposphere.ec2.SecurityGroup
        """
        props = {
            "GroupDescription": self.description,
            "VpcId": vpc_id,
            "SecurityGroupIngress": [rule.to_cfn() for rule in self.ingress_rules],
            "Tags": Tags(Name=Ref("AWS::StackName")),
        }
        if self.allow_all_outbound:
            props["SecurityGroupEgress"] = [
                SecurityGroupRule(
                    IpProtocol="-1",
                    CidrIp="0.0.0.0/0",
                    Description="Allow all outbound traffic by default",
                )
            ]
        return SecurityGroup(self.name, **props)


def define_services_boundary(vpc_cidr, workloads) -> SecurityBoundary:
    """
    Security boundary allowing the workloads ports from within the VPC only.

    :param str vpc_cidr:
    :param list[ecs_stagex.services.workloads.Workload] workloads:
    """
    boundary = SecurityBoundary(
        SG_T, description="MySQL, Kafka and Zookeeper access from within the VPC"
    )
    for workload in workloads:
        boundary.add_ingress(
            workload.protocol,
            workload.container_port,
            vpc_cidr,
            description=f"Allow {workload.title} traffic",
        )
    return boundary
