# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from pytest import raises

from ecs_stagex.exceptions import WorkloadValidationError
from ecs_stagex.services.workloads import (
    Workload,
    define_workloads,
    validate_fargate_compute,
    validate_load_balanced_ports,
)


def test_default_workloads():
    workloads = define_workloads()
    assert list(workloads.keys()) == ["mysql", "zookeeper", "kafka"]
    mysql = workloads["mysql"]
    assert mysql.image == "mysql:8.3.0"
    assert mysql.desired_count == 1
    assert mysql.stateful and mysql.execute_command and mysql.load_balanced
    zookeeper = workloads["zookeeper"]
    assert zookeeper.desired_count == 3
    assert (zookeeper.cpu, zookeeper.memory) == (256, 512)
    assert not zookeeper.load_balanced
    assert zookeeper.discovery_name == "zookeeper-service"
    kafka = workloads["kafka"]
    assert (kafka.cpu, kafka.memory) == (512, 1024)
    assert kafka.environment["KAFKA_BROKER_RACK"] == "RACK1"
    assert kafka.environment["KAFKA_UNCLEAN_LEADER_ELECTION_ENABLE"] == "false"


def test_workloads_overrides():
    workloads = define_workloads(
        {
            "kafka": {
                "desired_count": 5,
                "cpu": 1024,
                "memory": 4096,
                "environment": {"KAFKA_NUM_PARTITIONS": 6, "KAFKA_AUTO_CREATE_TOPICS_ENABLE": False},
            },
            "mysql": {"image": "mysql:8.4.0"},
        }
    )
    kafka = workloads["kafka"]
    assert kafka.desired_count == 5
    assert (kafka.cpu, kafka.memory) == (1024, 4096)
    assert kafka.environment["KAFKA_NUM_PARTITIONS"] == "6"
    assert kafka.environment["KAFKA_AUTO_CREATE_TOPICS_ENABLE"] == "false"
    assert workloads["mysql"].image == "mysql:8.4.0"


@pytest.mark.parametrize(
    "config",
    [
        {"mysql": {"desired_count": 2}},
        {"zookeeper": {"desired_count": 0}},
        {"kafka": {"cpu": 256, "memory": 4096}},
        {"kafka": {"cpu": 300, "memory": 1024}},
        {"redis": {"image": "redis"}},
    ],
)
def test_invalid_overrides(config):
    with raises(WorkloadValidationError):
        define_workloads(config)


def test_fargate_compute():
    validate_fargate_compute("test", 256, 2048)
    validate_fargate_compute("test", 16384, 122880)
    with raises(ValueError):
        validate_fargate_compute("test", 256, 4096)
    with raises(ValueError):
        validate_fargate_compute("test", 8192, 18432)


def test_load_balanced_ports_conflict():
    first = Workload("first", "nginx", 8080, load_balanced=True)
    second = Workload("second", "httpd", 8080, load_balanced=True)
    internal = Workload("internal", "httpd", 8080)
    validate_load_balanced_ports([first, internal])
    with raises(WorkloadValidationError):
        validate_load_balanced_ports([first, second])


def test_workload_port_validation():
    workload = Workload("test", "nginx", 0)
    with raises(WorkloadValidationError):
        workload.validate()
