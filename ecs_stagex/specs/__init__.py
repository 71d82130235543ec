#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Load and validate against the JSON Schema specification of the configuration file
"""

import json

import jsonschema
from importlib_resources import files as pkg_files

from ecs_stagex.common.logging import LOG

SPEC_FILE_NAME = "stagex.spec.json"


def load_spec() -> dict:
    source = pkg_files("ecs_stagex").joinpath("specs").joinpath(SPEC_FILE_NAME)
    return json.loads(source.read_text())


def validate_config(content: dict) -> dict:
    """
    Validates the configuration content against the StageX specification

    :param dict content:
    :raises jsonschema.exceptions.ValidationError: if the content is not valid
    :return: the content
    """
    LOG.debug(f"Validating configuration against {SPEC_FILE_NAME}")
    jsonschema.validate(content, load_spec())
    return content
