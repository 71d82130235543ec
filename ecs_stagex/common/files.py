# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to manage the templates and configuration files written to disk
"""

from __future__ import annotations

import json
from os import makedirs
from os.path import abspath

import yaml
from botocore.exceptions import ClientError
from troposphere import Template

from ecs_stagex.common.logging import LOG

try:
    from yaml import CDumper as Dumper
except ImportError:
    from yaml import Dumper

JSON_MIME = "application/json"
YAML_MIME = "application/x-yaml"
MAX_TEMPLATE_BODY_SIZE = 51200


class FileArtifact:
    """
    Class to handle files artifacts, such as configuration files or templates.
    It writes the content to the local filesystem and handles CloudFormation templates validation.

    :cvar str body: The content of the FileArtifact
    :cvar troposphere.Template template: the CFN template
    :cvar str file_name: the base name of the file
    :cvar str mime: MIME-type of the file
    :cvar str file_path: Output file path for the FileArtifact
    """

    mime = JSON_MIME
    file_path = None

    def __init__(
        self, file_name, settings, file_format=None, template=None, content=None
    ):
        self.template = None
        self.content = None
        self.body = None
        self.file_name = file_name
        if file_format is None:
            file_format = settings.format
        if template is not None and not isinstance(template, Template):
            raise TypeError("template must be of type", Template, "got", type(template))
        elif template is not None:
            self.template = template
        elif isinstance(content, (tuple, dict, str, list)):
            self.content = content
        else:
            raise TypeError(
                "content must be of type", tuple, dict, str, list, "Got", type(content)
            )
        self.define_file_specs(file_name, file_format, settings)
        self.file_path = f"{settings.output_dir}/{self.file_name}"
        self.define_body()

    def __repr__(self):
        return self.file_path

    def define_file_specs(self, file_name, file_format, settings):
        """
        Method to set the file name and MIME type from the format

        :param str file_name: name of the file
        :param str file_format: format to use for the file.
        :param settings: The settings for execution
        """
        if file_format not in settings.allowed_formats:
            raise ValueError(
                file_format, "is not valid. Must be one of", settings.allowed_formats
            )
        self.file_name = f"{file_name}.{file_format}"
        self.mime = YAML_MIME if file_format == "yaml" else JSON_MIME

    def define_body(self):
        """
        Method to define the body of the file artifact.
        """
        if isinstance(self.template, Template):
            if self.mime == YAML_MIME:
                self.body = self.template.to_yaml()
            else:
                self.body = self.template.to_json()
        elif isinstance(self.content, str):
            self.body = self.content
        elif self.mime == YAML_MIME:
            self.body = yaml.dump(self.content, Dumper=Dumper)
        else:
            self.body = json.dumps(self.content, indent=4)

    def write(self, settings):
        """
        Method to write the files to local filesystem into the settings output directory
        """
        makedirs(settings.output_dir, exist_ok=True)
        with open(self.file_path, "w") as template_fd:
            template_fd.write(self.body)
        LOG.info(f"{self.file_name} written successfully at {abspath(self.file_path)}")

    def validate(self, settings):
        """
        Method to validate the CloudFormation template via TemplateBody
        """
        if len(self.body) >= MAX_TEMPLATE_BODY_SIZE:
            LOG.warning(
                f"Template body for {self.file_name} is too big for validation. Skipping."
            )
            return
        try:
            settings.session.client("cloudformation").validate_template(
                TemplateBody=self.body
            )
            LOG.debug(f"Template {self.file_name} was validated successfully by CFN")
        except ClientError as error:
            LOG.error(error)
            LOG.error(f"Failed validation for template {abspath(self.file_path)}")
            raise


def write_stack_files(stack, settings, validate=False):
    """
    Writes the template of the stack and its parameters file.

    :param ecs_stagex.common.stacks.StageStack stack:
    :param ecs_stagex.common.settings.StageXSettings settings:
    :param bool validate: whether to validate the template against CloudFormation
    :return: the template file
    :rtype: FileArtifact
    """
    template_file = FileArtifact(
        stack.name, settings=settings, template=stack.stack_template
    )
    template_file.write(settings)
    params = stack.render_parameters_list_cfn()
    if params:
        params_file = FileArtifact(
            f"{stack.name}.params", settings=settings, content=params, file_format="json"
        )
        params_file.write(settings)
    if validate:
        template_file.validate(settings)
    return template_file
