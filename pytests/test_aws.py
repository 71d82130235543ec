# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

from datetime import datetime
from types import SimpleNamespace

from botocore.stub import ANY, Stubber
from pytest import fixture

from ecs_stagex.common.aws import CAPABILITIES, deploy
from ecs_stagex.vpc.vpc_stack import NetworkStack

STACK_ID = "arn:aws:cloudformation:eu-west-1:123456789012:stack/expense-network/abcd"


@fixture()
def cfn_client(session):
    return session.client("cloudformation")


@fixture()
def settings(cfn_client):
    return SimpleNamespace(
        session=SimpleNamespace(client=lambda name: cfn_client),
        disable_rollback=False,
        wait=False,
    )


@fixture()
def stack():
    return NetworkStack("expense-network", "10.0.0.0/16", 1)


def test_deploy_creates_stack(settings, cfn_client, stack):
    stubber = Stubber(cfn_client)
    stubber.add_client_error(
        "describe_stacks",
        service_error_code="ValidationError",
        service_message="Stack with id expense-network does not exist",
        http_status_code=400,
    )
    stubber.add_response(
        "create_stack",
        {"StackId": STACK_ID},
        {
            "StackName": "expense-network",
            "Capabilities": CAPABILITIES,
            "Parameters": [],
            "TemplateBody": ANY,
            "DisableRollback": False,
        },
    )
    with stubber:
        assert deploy(settings, stack, stack.render()) == STACK_ID
        stubber.assert_no_pending_responses()


def test_deploy_no_updates(settings, cfn_client, stack):
    existing = {
        "Stacks": [
            {
                "StackName": "expense-network",
                "StackStatus": "UPDATE_COMPLETE",
                "CreationTime": datetime(2022, 1, 1),
            }
        ]
    }
    stubber = Stubber(cfn_client)
    stubber.add_response("describe_stacks", existing, {"StackName": "expense-network"})
    stubber.add_response("describe_stacks", existing, {"StackName": "expense-network"})
    stubber.add_client_error(
        "update_stack",
        service_error_code="ValidationError",
        service_message="No updates are to be performed.",
        http_status_code=400,
    )
    with stubber:
        assert deploy(settings, stack, stack.render()) is None
        stubber.assert_no_pending_responses()
