# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the services stage stack, from the network identifiers resolved from the registry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_stagex.common.settings import StageXSettings
    from ecs_stagex.registry import ParametersRegistry

from troposphere import GetAtt, Sub

from ecs_stagex.common import add_resource, build_template
from ecs_stagex.common.cfn_params import LOG_RETENTION, LOG_RETENTION_T
from ecs_stagex.common.logging import LOG
from ecs_stagex.common.stacks import StageStack
from ecs_stagex.exceptions import NetworkValidationError
from ecs_stagex.registry.registry_params import (
    SERVICES_NLB_KEY,
    VPC_ID_KEY,
    network_keys,
    private_subnets_keys,
    public_subnets_keys,
)
from ecs_stagex.services.ecs_service import (
    add_cloudmap_namespace,
    add_discovery_service,
    add_ecs_cluster,
    add_ecs_service,
)
from ecs_stagex.services.ecs_task import add_task_definition
from ecs_stagex.services.nlb import (
    add_listener,
    add_network_load_balancer,
    add_target_group,
)
from ecs_stagex.services.secrets import DatabaseCredentials
from ecs_stagex.services.security_boundary import define_services_boundary
from ecs_stagex.services.services_params import NAMESPACE_NAME
from ecs_stagex.services.workloads import KAFKA, MYSQL, ZOOKEEPER, define_workloads
from ecs_stagex.vpc.vpc_aws import lookup_vpc_cidr
from ecs_stagex.vpc.vpc_maths import get_vpc_network


class NetworkContext:
    """
    The network identifiers the services stage is deployed into.

    :ivar str vpc_id:
    :ivar str vpc_cidr:
    :ivar list[str] public_subnets:
    :ivar list[str] private_subnets:
    """

    def __init__(self, vpc_id, vpc_cidr, public_subnets, private_subnets):
        get_vpc_network(vpc_cidr)
        self.vpc_id = vpc_id
        self.vpc_cidr = vpc_cidr
        self.public_subnets = list(public_subnets)
        self.private_subnets = list(private_subnets)

    def __repr__(self):
        return f"{self.vpc_id} ({self.vpc_cidr}) - {self.private_subnets}"


def resolve_network(
    registry: ParametersRegistry, zones: int, vpc_cidr: str = None, session=None
) -> NetworkContext:
    """
    Resolves the VPC and subnets IDs published by the network stage. All keys are looked up
    before raising so that the error lists every missing key.

    :param ecs_stagex.registry.ParametersRegistry registry:
    :param int zones: the number of AZs the network stage was deployed over
    :param str vpc_cidr: the VPC CIDR. Looked up from EC2 if not set.
    :param boto3.session.Session session:
    :rtype: NetworkContext
    :raises MissingRegistryKeys:
    """
    if isinstance(zones, bool) or not isinstance(zones, int) or zones < 1:
        raise NetworkValidationError(f"zones must be a positive integer. Got {zones}")
    values = registry.resolve_all(network_keys(zones))
    vpc_id = values[VPC_ID_KEY]
    if vpc_cidr is None:
        vpc_cidr = lookup_vpc_cidr(vpc_id, session)
    return NetworkContext(
        vpc_id,
        vpc_cidr,
        [values[key] for key in public_subnets_keys(zones)],
        [values[key] for key in private_subnets_keys(zones)],
    )


class ServicesStack(StageStack):
    """
    The services stage: ECS Cluster running MySQL, Zookeeper and Kafka on Fargate in the private subnets,
    behind an internal NLB. Publishes the NLB DNS name.

    :ivar NetworkContext network:
    :ivar dict workloads: the workloads, by name
    :ivar ecs_stagex.services.security_boundary.SecurityBoundary boundary:
    :ivar dict services: the ECS services, by workload name
    :ivar dict listeners: the NLB listeners, by workload name
    """

    def __init__(
        self,
        name,
        network,
        workloads=None,
        key_prefix=None,
        database_secret_arn=None,
        log_retention=14,
    ):
        if not isinstance(network, NetworkContext):
            raise TypeError("network is", type(network), "expected", NetworkContext)
        self.network = network
        self.workloads = workloads if workloads is not None else define_workloads()
        template = build_template(
            f"Services stage - {', '.join(self.workloads.keys())} in {network.vpc_id}",
            [LOG_RETENTION],
        )
        super().__init__(
            name,
            template,
            key_prefix=key_prefix,
            parameters={LOG_RETENTION_T: log_retention},
        )
        self.boundary = define_services_boundary(
            network.vpc_cidr, self.workloads.values()
        )
        self.security_group = add_resource(
            template, self.boundary.to_security_group(network.vpc_id)
        )
        self.cluster = add_ecs_cluster(template)
        self.namespace = add_cloudmap_namespace(template, network.vpc_id)
        self.nlb = add_network_load_balancer(template, network.private_subnets)
        self.credentials = None
        self.task_definitions = {}
        self.target_groups = {}
        self.listeners = {}
        self.discovery_services = {}
        self.services = {}
        self.set_workloads_settings(database_secret_arn)
        for workload in self.workloads.values():
            self.add_workload(workload)
        self.publish(
            SERVICES_NLB_KEY,
            GetAtt(self.nlb, "DNSName"),
            description="DNS name of the internal NLB for MySQL and Kafka",
        )
        LOG.info(
            f"{self.name} - {len(self.services)} services, {len(self.listeners)} NLB listeners"
        )

    def set_workloads_settings(self, database_secret_arn=None):
        """
        Sets the settings that depend on other resources: the MySQL passwords secrets, and for Kafka
        the Zookeeper connection string and the advertised listener on the NLB
        """
        if MYSQL in self.workloads:
            mysql = self.workloads[MYSQL]
            self.credentials = DatabaseCredentials(
                self.stack_template,
                database_secret_arn,
                user=mysql.environment.get("MYSQL_USER", "user"),
                root_user=mysql.environment.get("MYSQL_ROOT_USER", "root"),
            )
            mysql.set_secrets(self.credentials.secrets)
        if KAFKA in self.workloads:
            kafka = self.workloads[KAFKA]
            if ZOOKEEPER in self.workloads and self.workloads[ZOOKEEPER].discovery_name:
                zookeeper = self.workloads[ZOOKEEPER]
                kafka.environment.setdefault(
                    "KAFKA_ZOOKEEPER_CONNECT",
                    f"{zookeeper.discovery_name}.{NAMESPACE_NAME}:{zookeeper.container_port}",
                )
            nlb_dns = f"${{{self.nlb.title}.DNSName}}"
            listeners = kafka.environment.setdefault(
                "KAFKA_ADVERTISED_LISTENERS",
                Sub(f"PLAINTEXT://{nlb_dns}:{kafka.container_port}"),
            )
            if isinstance(listeners, str):
                if nlb_dns in listeners:
                    kafka.environment["KAFKA_ADVERTISED_LISTENERS"] = Sub(listeners)
                else:
                    LOG.warning(
                        f"{self.name} - KAFKA_ADVERTISED_LISTENERS {listeners} does not use the NLB DNS name {nlb_dns}."
                        " Clients connecting through the NLB will not be able to reach the brokers."
                    )

    def add_workload(self, workload):
        """
        Adds the task definition, the NLB listener and target group when load balanced,
        the Cloud Map service when discoverable, and the ECS service of the workload.

        :param ecs_stagex.services.workloads.Workload workload:
        """
        template = self.stack_template
        self.task_definitions[workload.name] = add_task_definition(
            template,
            workload,
            self.credentials.resources_arns if self.credentials else None,
        )
        target_group = None
        listener = None
        discovery_service = None
        if workload.load_balanced:
            target_group = add_target_group(template, workload, self.network.vpc_id)
            listener = add_listener(template, self.nlb, workload, target_group)
            self.target_groups[workload.name] = target_group
            self.listeners[workload.name] = listener
        if workload.discovery_name:
            discovery_service = add_discovery_service(template, workload, self.namespace)
            self.discovery_services[workload.name] = discovery_service
        self.services[workload.name] = add_ecs_service(
            template,
            workload,
            self.cluster,
            self.task_definitions[workload.name],
            self.network.private_subnets,
            self.security_group,
            target_group=target_group,
            listener=listener,
            discovery_service=discovery_service,
        )


def create_services_stack(
    settings: StageXSettings, registry: ParametersRegistry = None
) -> ServicesStack:
    """
    Creates the services stage stack. Fails before building anything if the network keys cannot be resolved.

    :param StageXSettings settings:
    :param ecs_stagex.registry.ParametersRegistry registry: defaults to the SSM registry of the settings
    :rtype: ServicesStack
    """
    workloads = define_workloads(settings.services_config)
    if registry is None:
        registry = settings.get_registry()
    network = resolve_network(
        registry,
        settings.zones,
        vpc_cidr=settings.services_vpc_cidr,
        session=settings.session,
    )
    LOG.info(f"{settings.services_stack_name} - deploying into {network}")
    return ServicesStack(
        settings.services_stack_name,
        network,
        workloads=workloads,
        key_prefix=settings.registry_prefix,
        database_secret_arn=settings.database_secret_arn,
        log_retention=settings.log_retention,
    )
