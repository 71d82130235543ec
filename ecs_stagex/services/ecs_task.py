# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the Log Groups and Task Definitions of the workloads
"""

from __future__ import annotations

from troposphere import AWS_REGION, GetAtt, Ref, Sub
from troposphere.ecs import (
    ContainerDefinition,
    Environment,
    LinuxParameters,
    LogConfiguration,
    PortMapping,
)
from troposphere.ecs import Secret as EcsSecret
from troposphere.ecs import TaskDefinition
from troposphere.logs import LogGroup

from ecs_stagex.common.cfn_params import LOG_RETENTION
from ecs_stagex.services import metadata
from ecs_stagex.services.services_params import LOG_MAX_BUFFER_SIZE, LOG_MODE
from ecs_stagex.services.task_iam import add_execution_role, add_task_role


def add_log_group(template, workload) -> LogGroup:
    return LogGroup(
        f"{workload.title}LogGroup",
        template=template,
        LogGroupName=Sub(f"${{AWS::StackName}}/{workload.name}"),
        RetentionInDays=Ref(LOG_RETENTION),
    )


def define_log_configuration(workload, log_group) -> LogConfiguration:
    """
    awslogs configuration, non-blocking so that the container is not stalled by logs delivery.
    """
    return LogConfiguration(
        LogDriver="awslogs",
        Options={
            "awslogs-group": Ref(log_group),
            "awslogs-region": Ref(AWS_REGION),
            "awslogs-stream-prefix": workload.log_prefix,
            "mode": LOG_MODE,
            "max-buffer-size": LOG_MAX_BUFFER_SIZE,
        },
    )


def define_container(workload, log_group) -> ContainerDefinition:
    """
    Function to define the container definition of the workload

    :param ecs_stagex.services.workloads.Workload workload:
    :param troposphere.logs.LogGroup log_group:
    :rtype: troposphere.ecs.ContainerDefinition
    """
    container = ContainerDefinition(
        Name=workload.container_name,
        Image=workload.image,
        Essential=True,
        PortMappings=[
            PortMapping(
                ContainerPort=workload.container_port, Protocol=workload.protocol
            )
        ],
        Environment=[
            Environment(Name=key, Value=value)
            for key, value in sorted(workload.environment.items())
        ],
        LogConfiguration=define_log_configuration(workload, log_group),
    )
    if workload.secrets:
        setattr(
            container,
            "Secrets",
            [
                EcsSecret(Name=key, ValueFrom=value)
                for key, value in sorted(workload.secrets.items())
            ],
        )
    if workload.execute_command:
        setattr(container, "LinuxParameters", LinuxParameters(InitProcessEnabled=True))
    return container


def add_task_definition(template, workload, secrets_arns=None) -> TaskDefinition:
    """
    Creates the Fargate task definition along with its IAM roles and log group

    :param troposphere.Template template:
    :param ecs_stagex.services.workloads.Workload workload:
    :param list secrets_arns: the secrets the execution role must be able to read
    :rtype: troposphere.ecs.TaskDefinition
    """
    log_group = add_log_group(template, workload)
    exec_role = add_execution_role(
        template, workload, secrets_arns if workload.secrets else None
    )
    task_role = add_task_role(template, workload)
    return TaskDefinition(
        f"{workload.title}TaskDef",
        template=template,
        Family=Sub(f"${{AWS::StackName}}-{workload.name}"),
        Cpu=str(workload.cpu),
        Memory=str(workload.memory),
        NetworkMode="awsvpc",
        RequiresCompatibilities=["FARGATE"],
        ExecutionRoleArn=GetAtt(exec_role, "Arn"),
        TaskRoleArn=GetAtt(task_role, "Arn"),
        ContainerDefinitions=[define_container(workload, log_group)],
        Metadata=metadata,
    )
