# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Most commonly used functions shared across all modules.
"""

from __future__ import annotations

import re

from troposphere import AWSObject, Output, Parameter, Template

from ecs_stagex.common.logging import LOG

NONALPHANUM = re.compile(r"([^a-zA-Z\d]+)")


def init_template(description=None):
    """Function to initialize the troposphere base template

    :param str description: Description used for the CFN
    :returns: template
    :rtype: troposphere.Template
    """
    if description is not None:
        template = Template(description)
    else:
        template = Template("Template generated by ECS StageX")
    template.set_metadata({"Type": "StageX"})
    template.set_version()
    return template


def add_parameters(template, parameters):
    """Function to add parameters to the template

    :param troposphere.Template template: the template to add the parameters to
    :param list parameters: list of parameters to add to the template
    """
    for param in parameters:
        if not isinstance(param, Parameter):
            raise TypeError("Expected", Parameter, "got", type(param))
        if param.title not in template.parameters:
            template.add_parameter(param)


def build_template(description=None, *parameters):
    """
    Init and add parameters to the template in one go

    :param str description:
    :param list parameters:
    :rtype: troposphere.Template
    """
    template = init_template(description)
    if parameters:
        add_parameters(template, parameters[0])
    return template


def add_resource(template, resource, replace=False):
    """
    Function to add resource to template if the resource does not already exist

    :param troposphere.Template template:
    :param troposphere.AWSObject resource:
    :param bool replace:
    """
    if not isinstance(resource, AWSObject):
        raise TypeError("Expected", AWSObject, "got", type(resource))
    if resource.title not in template.resources:
        template.add_resource(resource)
    elif resource.title in template.resources and replace:
        template.resources[resource.title] = resource
    else:
        LOG.debug(f"{resource.title} already in template. Skipping")
    return template.resources[resource.title]


def add_outputs(template, outputs):
    """
    Function to add outputs to the template, skipping the ones already present

    :param troposphere.Template template:
    :param list[troposphere.Output] outputs:
    """
    for output in outputs:
        if not isinstance(output, Output):
            raise TypeError("Expected", Output, "got", type(output))
        if output.title not in template.outputs:
            template.add_output(output)
