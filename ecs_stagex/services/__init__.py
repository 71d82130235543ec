# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS StageX - Services stage. Runs MySQL, Zookeeper and Kafka on ECS Fargate in the private subnets
of the network stage, behind an internal Network Load Balancer.
"""

from ecs_stagex import __version__

metadata = {
    "Type": "StageX",
    "Properties": {"Version": __version__, "Stage": "services"},
}
