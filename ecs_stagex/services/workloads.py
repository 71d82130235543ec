# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to define the workloads (MySQL, Zookeeper, Kafka) that run in the services stage.
"""

from __future__ import annotations

from copy import deepcopy

from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_stagex.common import NONALPHANUM
from ecs_stagex.common.logging import LOG
from ecs_stagex.exceptions import WorkloadValidationError
from ecs_stagex.services.services_params import (
    FARGATE_MODES,
    KAFKA_PORT,
    MYSQL_PORT,
    ZOOKEEPER_PORT,
)

MYSQL = "mysql"
ZOOKEEPER = "zookeeper"
KAFKA = "kafka"


def validate_fargate_compute(name: str, cpu: int, memory: int) -> None:
    """
    Checks that the CPU and RAM combination is a valid Fargate configuration

    :raises WorkloadValidationError:
    """
    if cpu not in FARGATE_MODES.keys():
        raise WorkloadValidationError(
            f"{name} - CPU {cpu} is not valid for Fargate. Valid modes: {list(FARGATE_MODES.keys())}"
        )
    if memory not in FARGATE_MODES[cpu]:
        raise WorkloadValidationError(
            f"{name} - Memory {memory} is not valid for {cpu} CPU on Fargate. Valid values: {FARGATE_MODES[cpu]}"
        )


class Workload:
    """
    Class to represent one containerized workload run as an ECS Service on Fargate

    :ivar str name: name of the workload
    :ivar str title: alphanumerical name used for the CFN resources
    :ivar str image: docker image
    :ivar int container_port:
    :ivar int desired_count: number of tasks to run
    :ivar int cpu: CPU units for the task
    :ivar int memory: RAM (MiB) for the task
    :ivar dict environment: environment variables
    :ivar dict secrets: environment variables to set from secrets, name to ValueFrom
    :ivar str log_prefix: awslogs stream prefix
    :ivar str discovery_name: Cloud Map service name, if the workload is discoverable
    :ivar bool load_balanced: whether the NLB has a listener for the container port
    :ivar bool execute_command: whether ECS Execute Command is enabled
    :ivar bool stateful: stateful workloads run exactly one task
    """

    def __init__(
        self,
        name,
        image,
        container_port,
        desired_count=1,
        cpu=256,
        memory=512,
        environment=None,
        log_prefix=None,
        discovery_name=None,
        load_balanced=False,
        execute_command=False,
        stateful=False,
        title=None,
        protocol="tcp",
    ):
        self.name = name
        self.title = title if title else NONALPHANUM.sub("", name.title())
        self.image = image
        self.container_port = container_port
        self.protocol = protocol
        self.desired_count = desired_count
        self.cpu = cpu
        self.memory = memory
        self.secrets = {}
        self.environment = {}
        if environment:
            self.set_environment(environment)
        self.log_prefix = log_prefix if log_prefix else self.title
        self.discovery_name = discovery_name
        self.load_balanced = load_balanced
        self.execute_command = execute_command
        self.stateful = stateful

    def __repr__(self):
        return f"{self.name} ({self.image}) - {self.desired_count} x {self.cpu}/{self.memory}"

    @property
    def container_name(self) -> str:
        return f"{self.title}Container"

    def set_environment(self, environment: dict) -> None:
        """
        Sets the environment variables. Values are kept as-is when not scalar (i.e. a Sub() to render in CFN)

        :raises WorkloadValidationError: if a variable is already set from a secret
        """
        for key, value in environment.items():
            if key in self.secrets:
                raise WorkloadValidationError(
                    f"{self.name} - {key} is set from a secret and cannot be set in the environment"
                )
            if isinstance(value, bool):
                self.environment[key] = str(value).lower()
            elif isinstance(value, (int, float)):
                self.environment[key] = str(value)
            else:
                self.environment[key] = value

    def set_secrets(self, secrets: dict) -> None:
        """
        Sets the environment variables read from secrets

        :param dict secrets: environment variable name to the ECS ValueFrom
        :raises WorkloadValidationError: if a variable is already set in the plain environment
        """
        duplicates = sorted(set(secrets).intersection(self.environment))
        if duplicates:
            raise WorkloadValidationError(
                f"{self.name} - {duplicates} are set from secrets and cannot be set in the environment"
            )
        self.secrets.update(secrets)

    def update_from_config(self, config: dict) -> None:
        """
        Overrides the workload defaults with the values from the configuration file

        :param dict config: the services.<name> section of the configuration
        """
        self.image = set_else_none("image", config, alt_value=self.image)
        if "desired_count" in config:
            self.desired_count = config["desired_count"]
        self.cpu = set_else_none("cpu", config, alt_value=self.cpu)
        self.memory = set_else_none("memory", config, alt_value=self.memory)
        if keyisset("environment", config):
            self.set_environment(config["environment"])
        LOG.debug(f"{self.name} - updated from configuration: {self}")

    def validate(self) -> None:
        """
        Validates the replica count, the Fargate compute and the container port

        :raises WorkloadValidationError:
        """
        if isinstance(self.desired_count, bool) or not isinstance(
            self.desired_count, int
        ):
            raise WorkloadValidationError(
                f"{self.name} - desired_count must be an integer. Got",
                type(self.desired_count),
            )
        if self.stateful and self.desired_count != 1:
            raise WorkloadValidationError(
                f"{self.name} is stateful and must run exactly one task. Got {self.desired_count}"
            )
        if self.desired_count < 1:
            raise WorkloadValidationError(
                f"{self.name} - desired_count must be at least 1. Got {self.desired_count}"
            )
        if not self.image or not isinstance(self.image, str):
            raise WorkloadValidationError(f"{self.name} - image must be set")
        if not isinstance(self.container_port, int) or not (
            1 <= self.container_port < (2**16)
        ):
            raise WorkloadValidationError(
                f"{self.name} - container port {self.container_port} is not valid"
            )
        validate_fargate_compute(self.name, self.cpu, self.memory)


def define_default_workloads() -> dict:
    """
    The MySQL, Zookeeper and Kafka workloads with their default settings.

    :rtype: dict[str, Workload]
    """
    mysql = Workload(
        MYSQL,
        "mysql:8.3.0",
        MYSQL_PORT,
        desired_count=1,
        cpu=256,
        memory=512,
        environment={"MYSQL_USER": "user", "MYSQL_ROOT_USER": "root"},
        title="MySQL",
        log_prefix="MySql",
        load_balanced=True,
        execute_command=True,
        stateful=True,
    )
    zookeeper = Workload(
        ZOOKEEPER,
        "confluentinc/cp-zookeeper:7.4.4",
        ZOOKEEPER_PORT,
        desired_count=3,
        cpu=256,
        memory=512,
        environment={
            "ZOOKEEPER_CLIENT_PORT": str(ZOOKEEPER_PORT),
            "ZOOKEEPER_TICK_TIME": "2000",
        },
        log_prefix="Zookeeper",
        discovery_name="zookeeper-service",
    )
    kafka = Workload(
        KAFKA,
        "confluentinc/cp-kafka:7.4.4",
        KAFKA_PORT,
        desired_count=3,
        cpu=512,
        memory=1024,
        environment={
            "KAFKA_BROKER_ID": "1",
            "KAFKA_LISTENERS": f"PLAINTEXT://:{KAFKA_PORT}",
            "KAFKA_LISTENER_SECURITY_PROTOCOL_MAP": "PLAINTEXT:PLAINTEXT",
            "KAFKA_INTER_BROKER_LISTENER_NAME": "PLAINTEXT",
            "KAFKA_OFFSETS_TOPIC_REPLICATION_FACTOR": "1",
            "KAFKA_AUTO_CREATE_TOPICS_ENABLE": "true",
            "KAFKA_NUM_PARTITIONS": "3",
            "KAFKA_DEFAULT_REPLICATION_FACTOR": "1",
            "KAFKA_MIN_INSYNC_REPLICAS": "1",
            "KAFKA_UNCLEAN_LEADER_ELECTION_ENABLE": "false",
            "KAFKA_BROKER_RACK": "RACK1",
        },
        log_prefix="Kafka",
        discovery_name="kafka-service",
        load_balanced=True,
    )
    return {MYSQL: mysql, ZOOKEEPER: zookeeper, KAFKA: kafka}


def validate_load_balanced_ports(workloads) -> None:
    """
    Each load balanced workload gets its own NLB listener, so ports must not overlap.

    :param list[Workload] workloads:
    :raises WorkloadValidationError:
    """
    ports = {}
    for workload in workloads:
        if not workload.load_balanced:
            continue
        if workload.container_port in ports:
            raise WorkloadValidationError(
                f"{workload.name} and {ports[workload.container_port]} both use port {workload.container_port}"
                " on the load balancer"
            )
        ports[workload.container_port] = workload.name


def define_workloads(services_config: dict = None) -> dict:
    """
    Defines the workloads, applying the configuration overrides, and validates them.

    :param dict services_config: the services section of the configuration
    :rtype: dict[str, Workload]
    """
    workloads = define_default_workloads()
    if services_config:
        for name, config in deepcopy(services_config).items():
            if name not in workloads:
                raise WorkloadValidationError(
                    f"Unknown service {name}. Must be one of {list(workloads.keys())}"
                )
            workloads[name].update_from_config(config)
    for workload in workloads.values():
        workload.validate()
    validate_load_balanced_ports(workloads.values())
    return workloads
