# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS StageX - Network stage. Creates the VPC, its subnets and gateways and publishes their IDs.
"""

from ecs_stagex import __version__

metadata = {
    "Type": "StageX",
    "Properties": {"Version": __version__, "Stage": "network"},
}
