# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to manage the database credentials, stored in AWS Secrets Manager and injected as secrets
into the MySQL container.
"""

from __future__ import annotations

import json
import re

from troposphere import Ref, Sub
from troposphere.secretsmanager import GenerateSecretString, Secret

from ecs_stagex.common import add_parameters
from ecs_stagex.common.cfn_params import Parameter
from ecs_stagex.common.logging import LOG

SECRET_ARN_RE = re.compile(
    r"^arn:aws(?:-[a-z]+)*:secretsmanager:[a-z0-9-]+:\d{12}:secret:[a-zA-Z0-9/_+=.@-]+$"
)

PASSWORD_KEY = "password"
ROOT_PASSWORD_KEY = "root_password"

DB_PASSWORD_LENGTH = Parameter(
    "DatabasePasswordLength",
    group_label="Database settings",
    Type="Number",
    MinValue=8,
    MaxValue=32,
    Default=16,
)


def add_db_secret(template, resource_title, username) -> Secret:
    """
    Adds a Secrets Manager secret with a generated password

    :param troposphere.Template template:
    :param str resource_title: logical name of the secret
    :param str username: the username stored alongside the password
    """
    add_parameters(template, [DB_PASSWORD_LENGTH])
    return Secret(
        resource_title,
        template=template,
        Description=Sub(f"{username} credentials for ${{AWS::StackName}}"),
        GenerateSecretString=GenerateSecretString(
            SecretStringTemplate=json.dumps({"username": username}),
            GenerateStringKey=PASSWORD_KEY,
            ExcludeCharacters="<>%`|;,.",
            ExcludePunctuation=True,
            ExcludeLowercase=False,
            ExcludeUppercase=False,
            IncludeSpace=False,
            RequireEachIncludedType=True,
            PasswordLength=Ref(DB_PASSWORD_LENGTH),
        ),
    )


class DatabaseCredentials:
    """
    Maps the MySQL passwords environment variables to the secrets they are read from.

    When no secret ARN is given, one secret is generated for the root user and one for the application user.
    An existing secret must hold both the ``password`` and ``root_password`` keys.

    :ivar dict secrets: environment variable name to the ECS ValueFrom
    :ivar list resources_arns: the secrets ARNs the execution role needs to read
    """

    def __init__(self, template, secret_arn=None, user="user", root_user="root"):
        self.secrets = {}
        self.resources_arns = []
        if secret_arn:
            if not SECRET_ARN_RE.match(secret_arn):
                raise ValueError(
                    "Secret ARN", secret_arn, "must match", SECRET_ARN_RE.pattern
                )
            LOG.info(f"Using existing database secret {secret_arn}")
            self.secrets["MYSQL_PASSWORD"] = f"{secret_arn}:{PASSWORD_KEY}::"
            self.secrets["MYSQL_ROOT_PASSWORD"] = f"{secret_arn}:{ROOT_PASSWORD_KEY}::"
            self.resources_arns.append(secret_arn)
        else:
            root_secret = add_db_secret(template, "MySQLRootSecret", root_user)
            user_secret = add_db_secret(template, "MySQLUserSecret", user)
            self.secrets["MYSQL_PASSWORD"] = Sub(
                f"${{{user_secret.title}}}:{PASSWORD_KEY}::"
            )
            self.secrets["MYSQL_ROOT_PASSWORD"] = Sub(
                f"${{{root_secret.title}}}:{PASSWORD_KEY}::"
            )
            self.resources_arns += [Ref(root_secret), Ref(user_secret)]
