# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the ECS Cluster, the Cloud Map namespace and the ECS Services
"""

from __future__ import annotations

from troposphere import GetAtt, Ref, Sub
from troposphere.ecs import (
    AwsvpcConfiguration,
    Cluster,
    ClusterSetting,
    DeploymentConfiguration,
)
from troposphere.ecs import LoadBalancer as EcsLoadBalancer
from troposphere.ecs import NetworkConfiguration, Service, ServiceRegistry
from troposphere.servicediscovery import (
    DnsConfig,
    DnsRecord,
    HealthCheckCustomConfig,
    PrivateDnsNamespace,
)
from troposphere.servicediscovery import Service as SdService

from ecs_stagex.services import metadata
from ecs_stagex.services.services_params import CLUSTER_T, NAMESPACE_NAME, NAMESPACE_T


def add_ecs_cluster(template) -> Cluster:
    return Cluster(
        CLUSTER_T,
        template=template,
        ClusterName=Sub(f"${{AWS::StackName}}-{CLUSTER_T}"),
        ClusterSettings=[ClusterSetting(Name="containerInsights", Value="enabled")],
        Metadata=metadata,
    )


def add_cloudmap_namespace(template, vpc_id, name=NAMESPACE_NAME) -> PrivateDnsNamespace:
    """
    Private DNS namespace in the VPC the discoverable services register into

    :param troposphere.Template template:
    :param str vpc_id:
    :param str name: the namespace domain name
    """
    return PrivateDnsNamespace(
        NAMESPACE_T,
        template=template,
        Name=name,
        Vpc=vpc_id,
        Description=Sub(f"{name} namespace for ${{AWS::StackName}}"),
    )


def add_discovery_service(template, workload, namespace) -> SdService:
    """
    Cloud Map service for the workload. Tasks register an A record each.
    """
    return SdService(
        f"{workload.title}DiscoveryService",
        template=template,
        Name=workload.discovery_name,
        NamespaceId=GetAtt(namespace, "Id"),
        DnsConfig=DnsConfig(
            DnsRecords=[DnsRecord(TTL=60, Type="A")],
            RoutingPolicy="MULTIVALUE",
        ),
        HealthCheckCustomConfig=HealthCheckCustomConfig(FailureThreshold=1),
    )


def define_deployment_configuration(workload) -> DeploymentConfiguration:
    """
    Stateful workloads stop the running task before starting the new one, so that only one is ever running.
    """
    if workload.stateful:
        return DeploymentConfiguration(MinimumHealthyPercent=0, MaximumPercent=100)
    return DeploymentConfiguration(MinimumHealthyPercent=50, MaximumPercent=200)


def add_ecs_service(
    template,
    workload,
    cluster,
    task_definition,
    subnets,
    security_group,
    target_group=None,
    listener=None,
    discovery_service=None,
) -> Service:
    """
    Creates the ECS Service of the workload, on Fargate in the given subnets without public IP.

    :param troposphere.Template template:
    :param ecs_stagex.services.workloads.Workload workload:
    :param troposphere.ecs.Cluster cluster:
    :param troposphere.ecs.TaskDefinition task_definition:
    :param list subnets: the private subnets IDs
    :param troposphere.ec2.SecurityGroup security_group:
    :param troposphere.elasticloadbalancingv2.TargetGroup target_group:
    :param troposphere.elasticloadbalancingv2.Listener listener:
    :param troposphere.servicediscovery.Service discovery_service:
    :rtype: troposphere.ecs.Service
    """
    props = {
        "Cluster": Ref(cluster),
        "TaskDefinition": Ref(task_definition),
        "DesiredCount": workload.desired_count,
        "LaunchType": "FARGATE",
        "EnableExecuteCommand": workload.execute_command,
        "DeploymentConfiguration": define_deployment_configuration(workload),
        "NetworkConfiguration": NetworkConfiguration(
            AwsvpcConfiguration=AwsvpcConfiguration(
                AssignPublicIp="DISABLED",
                Subnets=subnets,
                SecurityGroups=[GetAtt(security_group, "GroupId")],
            )
        ),
        "Metadata": metadata,
    }
    if target_group:
        props["LoadBalancers"] = [
            EcsLoadBalancer(
                ContainerName=workload.container_name,
                ContainerPort=workload.container_port,
                TargetGroupArn=Ref(target_group),
            )
        ]
        props["HealthCheckGracePeriodSeconds"] = 60
    if listener:
        props["DependsOn"] = [listener.title]
    if discovery_service:
        props["ServiceRegistries"] = [
            ServiceRegistry(RegistryArn=GetAtt(discovery_service, "Arn"))
        ]
    return Service(f"{workload.title}Service", template=template, **props)
