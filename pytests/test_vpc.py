# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from pytest import raises

from ecs_stagex.exceptions import DuplicateRegistryKey, NetworkValidationError
from ecs_stagex.vpc.vpc_maths import get_subnet_layers
from ecs_stagex.vpc.vpc_stack import NetworkStack


def resources_of_type(resources, resource_type):
    return {
        title: resource
        for title, resource in resources.items()
        if resource["Type"] == resource_type
    }


def test_subnet_layers():
    layers = get_subnet_layers("10.0.0.0/16", 2, 24)
    assert layers["public"] == ["10.0.0.0/24", "10.0.1.0/24"]
    assert layers["private"] == ["10.0.2.0/24", "10.0.3.0/24"]

    layers = get_subnet_layers("172.16.0.0/20", 3, 26)
    assert layers["public"] == [
        "172.16.0.0/26",
        "172.16.0.64/26",
        "172.16.0.128/26",
    ]
    assert layers["private"][0] == "172.16.0.192/26"


def test_subnet_layers_exact_fit():
    layers = get_subnet_layers("10.0.0.0/24", 2, 26)
    assert layers["private"] == ["10.0.0.128/26", "10.0.0.192/26"]


@pytest.mark.parametrize(
    "cidr, zones, mask",
    [
        ("10.0.0.256/16", 2, 24),
        ("not-a-cidr", 2, 24),
        ("10.0.0.0/8", 2, 24),
        ("10.0.0.0/16", 0, 24),
        ("10.0.0.0/16", 2, 12),
        ("10.0.0.0/16", 2, 29),
        ("10.0.0.0/24", 3, 26),
        ("10.0.0.0/28", 1, 28),
    ],
)
def test_invalid_network_layouts(cidr, zones, mask):
    with raises(NetworkValidationError):
        get_subnet_layers(cidr, zones, mask)


def test_network_validation_error_is_value_error():
    with raises(ValueError):
        NetworkStack("test-network", "10.0.0.0/16", -1)


def test_azs_must_match_zones():
    with raises(NetworkValidationError):
        NetworkStack("test-network", "10.0.0.0/16", 2, azs=["eu-west-1a"])


@pytest.mark.parametrize("zones", [1, 2, 3])
def test_network_routes(zones):
    stack = NetworkStack("test-network", "10.0.0.0/16", zones)
    resources = stack.stack_template.to_dict()["Resources"]

    assert len(resources_of_type(resources, "AWS::EC2::VPC")) == 1
    assert len(resources_of_type(resources, "AWS::EC2::InternetGateway")) == 1
    assert len(resources_of_type(resources, "AWS::EC2::NatGateway")) == zones
    assert len(resources_of_type(resources, "AWS::EC2::EIP")) == zones
    assert len(resources_of_type(resources, "AWS::EC2::Subnet")) == 2 * zones

    public_route = resources["PublicDefaultRoute"]["Properties"]
    assert public_route["DestinationCidrBlock"] == "0.0.0.0/0"
    assert public_route["GatewayId"] == {"Ref": "InternetGatewayV4"}

    for index in range(zones):
        public_subnet = resources[f"PublicSubnet{index}"]["Properties"]
        private_subnet = resources[f"PrivateSubnet{index}"]["Properties"]
        assert public_subnet["MapPublicIpOnLaunch"] is True
        assert "MapPublicIpOnLaunch" not in private_subnet
        assert public_subnet["AvailabilityZone"] == private_subnet["AvailabilityZone"]

        public_assoc = resources[f"PublicSubnetRtbAssoc{index}"]["Properties"]
        assert public_assoc["RouteTableId"] == {"Ref": "PublicRtb"}

        nat = resources[f"NatGatewayAz{index}"]["Properties"]
        assert nat["SubnetId"] == {"Ref": f"PublicSubnet{index}"}
        assert nat["AllocationId"] == {
            "Fn::GetAtt": [f"NatGatewayEip{index}", "AllocationId"]
        }

        route = resources[f"PrivateDefaultRoute{index}"]["Properties"]
        assert route["DestinationCidrBlock"] == "0.0.0.0/0"
        assert route["NatGatewayId"] == {"Ref": f"NatGatewayAz{index}"}
        assert route["RouteTableId"] == {"Ref": f"PrivateRtb{index}"}

        private_assoc = resources[f"PrivateSubnetRtbAssoc{index}"]["Properties"]
        assert private_assoc["RouteTableId"] == {"Ref": f"PrivateRtb{index}"}
        assert private_assoc["SubnetId"] == {"Ref": f"PrivateSubnet{index}"}


@pytest.mark.parametrize("zones", [1, 2, 3])
def test_network_published_keys(zones):
    stack = NetworkStack("test-network", "10.0.0.0/16", zones)
    expected = (
        ["VpcId"]
        + [f"PublicSubnet-{index}" for index in range(zones)]
        + [f"PrivateSubnet-{index}" for index in range(zones)]
    )
    assert sorted(stack.published.keys()) == sorted(expected)
    template = stack.stack_template.to_dict()
    resources = template["Resources"]
    parameters = resources_of_type(resources, "AWS::SSM::Parameter")
    assert len(parameters) == 1 + 2 * zones
    assert sorted(param["Properties"]["Name"] for param in parameters.values()) == sorted(
        expected
    )
    assert resources["PrivateSubnet0Export"]["Properties"]["Value"] == {
        "Ref": "PrivateSubnet0"
    }
    assert "VpcId" in template["Outputs"]


def test_network_published_keys_prefix():
    stack = NetworkStack("test-network", "10.0.0.0/16", 1, key_prefix="/expense/")
    assert "/expense/VpcId" in stack.published
    assert "/expense/PrivateSubnet-0" in stack.published


def test_explicit_azs():
    stack = NetworkStack(
        "test-network", "10.0.0.0/16", 2, azs=["eu-west-1a", "eu-west-1b"]
    )
    resources = stack.stack_template.to_dict()["Resources"]
    assert resources["PublicSubnet1"]["Properties"]["AvailabilityZone"] == "eu-west-1b"
    assert resources["PrivateSubnet1"]["Properties"]["AvailabilityZone"] == "eu-west-1b"


def test_default_azs_selection():
    stack = NetworkStack("test-network", "10.0.0.0/16", 2)
    resources = stack.stack_template.to_dict()["Resources"]
    assert resources["PrivateSubnet1"]["Properties"]["AvailabilityZone"] == {
        "Fn::Select": [1, {"Fn::GetAZs": {"Ref": "AWS::Region"}}]
    }


def test_render_formats():
    stack = NetworkStack("test-network", "10.0.0.0/16", 1)
    assert "AWS::EC2::VPC" in stack.render("json")
    assert "AWS::EC2::VPC" in stack.render("yaml")
    with raises(ValueError):
        stack.render("toml")


def test_duplicate_published_key():
    stack = NetworkStack("test-network", "10.0.0.0/16", 1)
    with raises(DuplicateRegistryKey):
        stack.publish("VpcId", "vpc-123")
    with raises(DuplicateRegistryKey):
        stack.publish("PublicSubnet-0", "subnet-123")
