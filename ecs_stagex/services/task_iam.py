# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
IAM roles for the ECS tasks
"""

from __future__ import annotations

from troposphere import Sub
from troposphere.iam import Policy, Role

from ecs_stagex.services.services_params import TASK_EXECUTION_POLICY


def service_role_trust_policy(service_name: str) -> dict:
    """
    Simple function to format the trust relationship for a Role and an AWS Service

    :param str service_name: name of the ecs_service
    :return: policy document
    :rtype: dict
    """
    statement = {
        "Effect": "Allow",
        "Principal": {"Service": [Sub(f"{service_name}.${{AWS::URLSuffix}}")]},
        "Action": ["sts:AssumeRole"],
        "Condition": {"Bool": {"aws:SecureTransport": "true"}},
    }
    policy_doc = {"Version": "2012-10-17", "Statement": [statement]}
    return policy_doc


def add_execution_role(template, workload, secrets_arns=None) -> Role:
    """
    Execution role used by the ECS agent to pull the image, send the logs and fetch the secrets.

    :param troposphere.Template template:
    :param ecs_stagex.services.workloads.Workload workload:
    :param list secrets_arns: ARNs of the secrets the task gets its environment from
    """
    policies = []
    if secrets_arns:
        policies.append(
            Policy(
                PolicyName="AccessToSecrets",
                PolicyDocument={
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": ["secretsmanager:GetSecretValue"],
                            "Resource": secrets_arns,
                        }
                    ],
                },
            )
        )
    return Role(
        f"{workload.title}ExecutionRole",
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
        Description=Sub(
            f"Execution role for {workload.name} in ${{AWS::StackName}}"
        ),
        ManagedPolicyArns=[
            Sub(f"arn:${{AWS::Partition}}:iam::aws:policy/{TASK_EXECUTION_POLICY}")
        ],
        Policies=policies,
    )


def add_task_role(template, workload) -> Role:
    """
    Role assumed by the containers. Grants the SSM messages access when ECS Execute Command is enabled.
    """
    policies = []
    if workload.execute_command:
        policies.append(
            Policy(
                PolicyName="EnableExecuteCommand",
                PolicyDocument={
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": [
                                "ssmmessages:CreateControlChannel",
                                "ssmmessages:CreateDataChannel",
                                "ssmmessages:OpenControlChannel",
                                "ssmmessages:OpenDataChannel",
                            ],
                            "Resource": "*",
                        }
                    ],
                },
            )
        )
    return Role(
        f"{workload.title}TaskRole",
        template=template,
        AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
        Description=Sub(f"TaskRole - {workload.name} in ${{AWS::StackName}}"),
        Policies=policies,
    )
