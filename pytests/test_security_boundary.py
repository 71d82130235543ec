# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from pytest import fixture, raises

from ecs_stagex.exceptions import WorkloadValidationError
from ecs_stagex.services.security_boundary import (
    SecurityBoundary,
    define_services_boundary,
)
from ecs_stagex.services.workloads import define_workloads


@fixture()
def boundary():
    return define_services_boundary("10.0.0.0/16", define_workloads().values())


def test_allowed_traffic(boundary):
    assert boundary.ports == [2181, 3306, 9092]
    for port in [2181, 3306, 9092]:
        assert boundary.permits_ingress("tcp", port, "10.0.2.15")
        assert boundary.permits_ingress("TCP", port, "10.0.255.254")


def test_denied_traffic(boundary):
    assert not boundary.permits_ingress("tcp", 3306, "192.168.1.10")
    assert not boundary.permits_ingress("tcp", 9092, "10.1.0.1")
    assert not boundary.permits_ingress("udp", 3306, "10.0.2.15")
    assert not boundary.permits_ingress("tcp", 22, "10.0.2.15")
    assert not boundary.permits_ingress("tcp", 8080, "10.0.2.15")


def test_egress_allowed(boundary):
    assert boundary.permits_egress("tcp", 443, "52.94.1.1")
    assert not SecurityBoundary("Closed", allow_all_outbound=False).permits_egress(
        "tcp", 443, "52.94.1.1"
    )


def test_empty_boundary_denies_everything():
    boundary = SecurityBoundary("Empty")
    assert not boundary.permits_ingress("tcp", 3306, "10.0.0.1")


def test_invalid_rules():
    boundary = SecurityBoundary("Test")
    with raises(ValueError):
        boundary.add_ingress("icmp", 3306, "10.0.0.0/16")
    with raises(ValueError):
        boundary.add_ingress("tcp", 70000, "10.0.0.0/16")
    with raises(ValueError):
        boundary.add_ingress("tcp", 3306, "10.0.0.256/16")
    boundary.add_ingress("tcp", 3306, "10.0.0.0/16")
    with raises(WorkloadValidationError):
        boundary.add_ingress("tcp", 3306, "10.1.0.0/16")


def test_security_group_rendering(boundary):
    group = boundary.to_security_group("vpc-123").to_dict()
    assert group["Type"] == "AWS::EC2::SecurityGroup"
    props = group["Properties"]
    assert props["VpcId"] == "vpc-123"
    ingress = props["SecurityGroupIngress"]
    assert sorted(rule["FromPort"] for rule in ingress) == [2181, 3306, 9092]
    for rule in ingress:
        assert rule["CidrIp"] == "10.0.0.0/16"
        assert rule["IpProtocol"] == "tcp"
        assert rule["FromPort"] == rule["ToPort"]
    assert props["SecurityGroupEgress"][0]["IpProtocol"] == "-1"
    assert props["SecurityGroupEgress"][0]["CidrIp"] == "0.0.0.0/0"
