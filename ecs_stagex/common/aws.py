# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Common functions to interact with AWS CloudFormation and sessions.
"""

import secrets
from string import ascii_lowercase
from time import sleep

from botocore.exceptions import ClientError
from compose_x_common.aws import get_assume_role_session
from compose_x_common.compose_x_common import keyisset
from tabulate import tabulate

from ecs_stagex.common.logging import LOG

CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]


def get_cross_role_session(session, arn, region_name=None, session_name=None):
    """
    Function to assume a role to use for all the API calls

    :param boto3.session.Session session: The original session fetching the credentials for X-Role
    :param str arn:
    :param str region_name: Name of region for session
    :param str session_name: Override name of the session
    :return: boto3 session from lookup settings
    :rtype: boto3.session.Session
    """
    if not session_name:
        session_name = "StageX@Deploy"
    try:
        return get_assume_role_session(
            session, arn, session_name=session_name, region=region_name
        )
    except ClientError:
        LOG.error(f"Failed to use the Role ARN {arn}")
        raise


def assert_can_create_stack(client, name):
    """
    Checks whether a stack already exists or not
    """
    try:
        stack_r = client.describe_stacks(StackName=name)
        if not keyisset("Stacks", stack_r):
            return True
        stacks = stack_r["Stacks"]
        if len(stacks) != 1:
            raise LookupError("Too many stacks found with machine name", name)
        stack = stacks[0]
        if stack["StackStatus"] == "REVIEW_IN_PROGRESS":
            return stack
        return False
    except ClientError as error:
        if (
            error.response["Error"]["Code"] == "ValidationError"
            and error.response["Error"]["Message"].find("does not exist") > 0
        ):
            return True
        raise error


def assert_can_update_stack(client, name):
    """
    Checks whether the stack is in a state that allows updates
    """
    can_update_statuses = [
        "CREATE_COMPLETE",
        "ROLLBACK_COMPLETE",
        "UPDATE_COMPLETE",
        "UPDATE_ROLLBACK_COMPLETE",
    ]
    res = client.describe_stacks(StackName=name)
    if not res["Stacks"]:
        return False
    stack = res["Stacks"][0]
    LOG.info(f"{name} - {stack['StackStatus']}")
    if stack["StackStatus"] in can_update_statuses:
        return True
    return False


def wait_for_stack(client, name, waiter_name):
    """
    Blocks until the stack operation completes. CloudFormation failures are surfaced as WaiterError

    :param client: CloudFormation client
    :param str name: the stack name
    :param str waiter_name: i.e. stack_create_complete
    """
    LOG.info(f"{name} - Waiting for {waiter_name}")
    client.get_waiter(waiter_name).wait(
        StackName=name, WaiterConfig={"Delay": 15, "MaxAttempts": 240}
    )
    LOG.info(f"{name} - {waiter_name} successful")


def deploy(settings, stack, template_body):
    """
    Function to deploy (create or update) the stack to CFN.

    :param ecs_stagex.common.settings.StageXSettings settings:
    :param ecs_stagex.common.stacks.StageStack stack:
    :param str template_body:
    :return: the stack ID
    """
    client = settings.session.client("cloudformation")
    if assert_can_create_stack(client, stack.name):
        res = client.create_stack(
            StackName=stack.name,
            Capabilities=CAPABILITIES,
            Parameters=stack.render_parameters_list_cfn(),
            TemplateBody=template_body,
            DisableRollback=settings.disable_rollback,
        )
        LOG.info(f"Stack {stack.name} creation started.")
        LOG.info(res["StackId"])
        if settings.wait:
            wait_for_stack(client, stack.name, "stack_create_complete")
        return res["StackId"]
    elif assert_can_update_stack(client, stack.name):
        LOG.warning(f"Stack {stack.name} already exists. Updating.")
        try:
            res = client.update_stack(
                StackName=stack.name,
                Capabilities=CAPABILITIES,
                Parameters=stack.render_parameters_list_cfn(),
                TemplateBody=template_body,
                DisableRollback=settings.disable_rollback,
            )
        except ClientError as error:
            if error.response["Error"]["Message"].startswith("No updates are to be performed"):
                LOG.info(f"Stack {stack.name} is up to date.")
                return None
            raise
        LOG.info(f"Stack {stack.name} update started.")
        LOG.info(res["StackId"])
        if settings.wait:
            wait_for_stack(client, stack.name, "stack_update_complete")
        return res["StackId"]
    LOG.error(f"Stack {stack.name} can neither be created nor updated.")
    return None


def get_change_set_status(client, change_set_name, stack_name):
    pending_statuses = [
        "CREATE_PENDING",
        "CREATE_IN_PROGRESS",
        "DELETE_PENDING",
        "DELETE_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
    ]
    success_statuses = ["CREATE_COMPLETE", "DELETE_COMPLETE"]
    failed_statuses = ["DELETE_FAILED", "FAILED"]
    ready = False
    status = None
    while not ready:
        status = client.describe_change_set(
            ChangeSetName=change_set_name, StackName=stack_name
        )
        if status["Status"] in failed_statuses:
            raise SystemExit(
                "Change set is unsuccessful", status["Status"], status.get("StatusReason")
            )
        if status["Status"] in pending_statuses:
            print(
                "ChangeSet creation in progress. Waiting 10 seconds",
                end="\r",
                flush=True,
            )
            sleep(10)
        elif status["Status"] in success_statuses:
            ready = True

    print(
        tabulate(
            [
                [
                    change["ResourceChange"]["LogicalResourceId"],
                    change["ResourceChange"]["ResourceType"],
                    change["ResourceChange"]["Action"],
                ]
                for change in status["Changes"]
            ],
            ["LogicalResourceId", "ResourceType", "Action"],
            tablefmt="rst",
        )
    )
    return status


def plan(settings, stack, template_body):
    """
    Function to create a change-set, display the diff and offer to apply it.

    :param ecs_stagex.common.settings.StageXSettings settings:
    :param ecs_stagex.common.stacks.StageStack stack:
    :param str template_body:
    """
    client = settings.session.client("cloudformation")
    change_set_name = f"{stack.title}" + "".join(
        secrets.choice(ascii_lowercase) for _ in range(10)
    )
    can_create = assert_can_create_stack(client, stack.name)
    if not can_create and not assert_can_update_stack(client, stack.name):
        LOG.error(f"Stack {stack.name} is not in a state allowing changes.")
        return None
    client.create_change_set(
        StackName=stack.name,
        Capabilities=CAPABILITIES,
        Parameters=stack.render_parameters_list_cfn(),
        TemplateBody=template_body,
        UsePreviousTemplate=False,
        ChangeSetType="CREATE" if can_create else "UPDATE",
        ChangeSetName=change_set_name,
    )
    status = get_change_set_status(client, change_set_name, stack.name)
    if status:
        apply_q = input("Want to apply? [yN]: ")
        if apply_q in ["y", "Y", "YES", "Yes", "yes"]:
            client.execute_change_set(
                ChangeSetName=change_set_name,
                StackName=stack.name,
                DisableRollback=settings.disable_rollback,
            )
            if settings.wait:
                wait_for_stack(
                    client,
                    stack.name,
                    "stack_create_complete" if can_create else "stack_update_complete",
                )
        else:
            delete_q = input("Cleanup ChangeSet ? [yN]: ")
            if delete_q in ["y", "Y", "YES", "Yes", "yes"]:
                client.delete_change_set(
                    ChangeSetName=change_set_name, StackName=stack.name
                )
    return status
