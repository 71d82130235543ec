# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for ecs_stagex.
"""

import argparse
import sys

from ecs_stagex import __version__
from ecs_stagex.common.aws import deploy, plan
from ecs_stagex.common.files import write_stack_files
from ecs_stagex.common.logging import LOG, set_log_level
from ecs_stagex.common.settings import StageXSettings
from ecs_stagex.exceptions import StageXBaseException
from ecs_stagex.services.services_stack import create_services_stack
from ecs_stagex.vpc.vpc_stack import create_network_stack

VERSION_CMD = "version"


class ArgparseHelper(argparse._HelpAction):
    """
    Used to help print top level '--help' arguments from argparse
    when used with subparsers
    """

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        print()
        subparsers_actions = [
            action
            for action in parser._actions
            if isinstance(action, argparse._SubParsersAction)
        ]
        for subparsers_action in subparsers_actions:
            for choice, subparser in list(subparsers_action.choices.items()):
                if choice in [stage["name"] for stage in StageXSettings.stages]:
                    print(f"Stage '{choice}'")
                    print(subparser.format_usage())


def define_base_parser():
    """
    Arguments common to all the stages commands
    """
    base_command_parser = argparse.ArgumentParser(add_help=False)
    base_command_parser.add_argument(
        "-n",
        "--name",
        help="Name of your deployment. Stacks are named <name>-network and <name>-services",
        required=True,
        type=str,
        dest=StageXSettings.name_arg,
    )
    base_command_parser.add_argument(
        "-f",
        "--config-file",
        dest=StageXSettings.input_file_arg,
        required=False,
        help="Path to the YAML configuration file",
    )
    base_command_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write all the templates to.",
        type=str,
        dest=StageXSettings.output_dir_arg,
        default=StageXSettings.default_output_dir,
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=StageXSettings.format_arg,
        choices=StageXSettings.allowed_formats,
        default=StageXSettings.default_format,
    )
    base_command_parser.add_argument(
        "--region",
        required=False,
        dest=StageXSettings.region_arg,
        help="Specify the region you want to build for"
        "default use default region from config or environment vars",
    )
    base_command_parser.add_argument(
        "--profile",
        required=False,
        dest=StageXSettings.profile_arg,
        help="AWS profile to use",
    )
    base_command_parser.add_argument(
        "--role-arn",
        dest=StageXSettings.arn_arg,
        help="Allow you to run API calls using a specific IAM role, within same or for cross-account",
        required=False,
    )
    base_command_parser.add_argument(
        "--zones",
        dest=StageXSettings.zones_count_arg,
        type=int,
        required=False,
        help="Number of availability zones the network is deployed over. Defaults to 2",
    )
    base_command_parser.add_argument(
        "--registry-prefix",
        dest=StageXSettings.registry_prefix_arg,
        required=False,
        help="Prefix for all the registry keys, i.e. /expense-tracker/",
    )
    base_command_parser.add_argument(
        "--disable-rollback",
        dest=StageXSettings.rollback_arg,
        help="On create/plan, disable stack automatic rollback.",
        required=False,
        action="store_true",
    )
    base_command_parser.add_argument(
        "--wait",
        dest=StageXSettings.wait_arg,
        help="Wait for the stack creation/update to complete",
        required=False,
        action="store_true",
    )
    base_command_parser.add_argument(
        "--validate",
        dest=StageXSettings.validate_arg,
        help="Validate the rendered template with CloudFormation",
        required=False,
        action="store_true",
    )
    base_command_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    return base_command_parser


def define_network_parser():
    network_parser = argparse.ArgumentParser(add_help=False)
    network_parser.add_argument(
        "--vpc-cidr",
        dest=StageXSettings.vpc_cidr_arg,
        required=False,
        help=f"CIDR of the VPC. Defaults to {StageXSettings.default_vpc_cidr}",
    )
    network_parser.add_argument(
        "--subnet-mask",
        dest=StageXSettings.subnet_mask_arg,
        type=int,
        required=False,
        help=f"Prefix length of each subnet. Defaults to {StageXSettings.default_subnet_mask}",
    )
    network_parser.add_argument(
        "--azs",
        dest=StageXSettings.zones_arg,
        default=[],
        action="append",
        required=False,
        help="List AZs you want to deploy to specifically within the region",
    )
    return network_parser


def define_services_parser():
    services_parser = argparse.ArgumentParser(add_help=False)
    services_parser.add_argument(
        "--vpc-cidr",
        dest=StageXSettings.vpc_cidr_lookup_arg,
        required=False,
        help="CIDR of the network stage VPC. Looked up from EC2 when not set.",
    )
    services_parser.add_argument(
        "--wait-for-keys",
        dest=StageXSettings.wait_for_keys_arg,
        type=int,
        required=False,
        help="Seconds to wait for the network stage keys to be published. Defaults to 0, fail immediately.",
    )
    return services_parser


def main_parser():
    """
    Console script for ecs_stagex.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-h",
        "--help",
        action=ArgparseHelper,
        help="show this help message and exit",
    )
    stage_parsers = parser.add_subparsers(
        dest=StageXSettings.stage_arg, help="Stage to work with."
    )
    base_command_parser = define_base_parser()
    stages_parents = {
        StageXSettings.network_stage: define_network_parser(),
        StageXSettings.services_stage: define_services_parser(),
    }
    for stage in StageXSettings.stages:
        stage_parser = stage_parsers.add_parser(name=stage["name"], help=stage["help"])
        cmd_parsers = stage_parser.add_subparsers(
            dest=StageXSettings.command_arg, help="Command to execute."
        )
        cmd_parsers.required = True
        for command in StageXSettings.active_commands:
            cmd_parsers.add_parser(
                name=command["name"],
                help=command["help"],
                parents=[base_command_parser, stages_parents[stage["name"]]],
            )
    stage_parsers.add_parser(name=VERSION_CMD, help="Print the version and exit")
    return parser


def generate_stage_stack(settings):
    """
    Generates the stack of the stage set in the settings

    :param ecs_stagex.common.settings.StageXSettings settings:
    :rtype: ecs_stagex.common.stacks.StageStack
    """
    if settings.stage == settings.network_stage:
        return create_network_stack(settings)
    elif settings.stage == settings.services_stage:
        return create_services_stack(settings)
    raise ValueError(
        "Stage",
        settings.stage,
        "is not valid. Must be one of",
        [stage["name"] for stage in settings.stages],
    )


def process_stage(settings):
    """
    Renders the stage template, then deploys or plans it when requested.
    """
    stack = generate_stage_stack(settings)
    template_file = write_stack_files(stack, settings, validate=settings.validate)
    if settings.deploy:
        deploy(settings, stack, template_file.body)
    elif settings.plan:
        plan(settings, stack, template_file.body)
    return stack


def main(args=None):
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if args is None:
        args = sys.argv[1:]
    if not args:
        parser.print_help()
        return 0
    options = parser.parse_args(args)
    if options.stage == VERSION_CMD:
        print(__version__)
        return 0
    if options.loglevel:
        try:
            set_log_level(options.loglevel)
        except ValueError as error:
            print(error)
    LOG.debug(options)
    try:
        settings = StageXSettings(**vars(options))
        LOG.debug(settings)
        process_stage(settings)
    except StageXBaseException as error:
        LOG.error(error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
