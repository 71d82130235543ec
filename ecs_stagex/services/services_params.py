# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Titles and constants used for the services stage.
"""

MYSQL_PORT = 3306
KAFKA_PORT = 9092
ZOOKEEPER_PORT = 2181

SG_T = "DbSecurityGroup"
CLUSTER_T = "DatabaseKafkaCluster"
NAMESPACE_T = "DefaultCloudMapNamespace"
NLB_T = "DatabaseNLB"

NAMESPACE_NAME = "local"

ALLOWED_PROTOCOLS = ["tcp", "udp"]

LOG_MODE = "non-blocking"
LOG_MAX_BUFFER_SIZE = "25m"

TASK_EXECUTION_POLICY = "service-role/AmazonECSTaskExecutionRolePolicy"

FARGATE_MODES = {
    256: [2**i for i in [9, 10, 11]],
    512: [(2**10) * i for i in range(1, 5)],
    1024: [(2**10) * i for i in range(2, 9)],
    2048: [(2**10) * i for i in range(4, 17)],
    4096: [(2**10) * i for i in range(8, 33)],
    8192: [(2**10) * i for i in range(16, 61, 4)],
    16384: [(2**10) * i for i in range(32, 121, 8)],
}
