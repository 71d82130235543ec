# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to handle the stages stacks. Allows to treat everything in memory before writing
the templates to disk or deploying them into CloudFormation.
"""

from __future__ import annotations

from troposphere import Export, Output, Sub, Template
from troposphere.ssm import Parameter as SsmParameter

from ecs_stagex.common import NONALPHANUM, add_outputs
from ecs_stagex.common.logging import LOG
from ecs_stagex.exceptions import DuplicateRegistryKey
from ecs_stagex.registry.registry_params import KEY_RE


class StageStack:
    """
    Class to keep track of a stage template along with the registry keys it publishes.

    :ivar str name: name of the CloudFormation stack
    :ivar troposphere.Template stack_template: the template of the stage
    :ivar dict published: registry key to value the stack publishes once deployed
    :ivar dict parameters: values to set the template parameters to when deploying
    """

    def __init__(self, name, stack_template, key_prefix=None, parameters=None):
        if not isinstance(stack_template, Template):
            raise TypeError(
                "stack_template is", type(stack_template), "expected", Template
            )
        self.name = name
        self.title = NONALPHANUM.sub("", name)
        self.stack_template = stack_template
        self.key_prefix = key_prefix if key_prefix else ""
        self.published = {}
        if parameters is None:
            self.parameters = {}
        elif not isinstance(parameters, dict):
            raise TypeError("parameters is", type(parameters), "expected", dict)
        else:
            self.parameters = parameters

    def __repr__(self):
        return self.name

    def publish(self, name, value, description=None):
        """
        Adds the SSM parameter which stores the value under the registry key, along with the matching Output.

        :param str name: registry key name
        :param value: the value to store. Usually a Ref() or GetAtt() to a resource of the template
        :param str description:
        :return: the SSM Parameter
        :rtype: troposphere.ssm.Parameter
        :raises DuplicateRegistryKey: if the stage already publishes that key
        """
        if not KEY_RE.match(name):
            raise ValueError("Registry key", name, "must match", KEY_RE.pattern)
        key = f"{self.key_prefix}{name}"
        if key in self.published:
            raise DuplicateRegistryKey(key)
        title = NONALPHANUM.sub("", f"{name}Export")
        parameter = SsmParameter(
            title,
            template=self.stack_template,
            Name=key,
            Type="String",
            Value=value,
            Description=description if description else f"{key} published by {self.name}",
        )
        add_outputs(
            self.stack_template,
            [
                Output(
                    NONALPHANUM.sub("", name),
                    Value=value,
                    Export=Export(Sub(f"${{AWS::StackName}}-{NONALPHANUM.sub('', name)}")),
                )
            ],
        )
        self.published[key] = value
        LOG.debug(f"{self.name} - publishes {key}")
        return parameter

    def render_parameters_list_cfn(self):
        """
        Renders parameters in a CFN parameters list format

        :return: params
        :rtype: list
        """
        return [
            {"ParameterKey": key, "ParameterValue": str(value)}
            for key, value in self.parameters.items()
            if key in self.stack_template.parameters
        ]

    def render(self, file_format="json"):
        """
        Renders the template body

        :param str file_format: json or yaml
        :rtype: str
        """
        if file_format == "yaml":
            return self.stack_template.to_yaml()
        elif file_format == "json":
            return self.stack_template.to_json()
        raise ValueError(file_format, "is not valid. Must be one of", ["json", "yaml"])
