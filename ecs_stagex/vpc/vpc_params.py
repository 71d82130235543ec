# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Titles and constants related to the VPC settings. Used by ecs_stagex.vpc and others
"""

VPC_T = "Vpc"
IGW_T = "InternetGatewayV4"
IGW_ATTACHMENT_T = "VpcGatewayAttachment"
PUBLIC_RTB_T = "PublicRtb"

PUBLIC_LAYER = "public"
PRIVATE_LAYER = "private"

DEFAULT_ROUTE = "0.0.0.0/0"

MIN_PREFIX = 16
MAX_PREFIX = 28
