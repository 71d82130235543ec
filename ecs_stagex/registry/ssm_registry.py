# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters registry backed by AWS SSM Parameter Store.
"""

from __future__ import annotations

from time import monotonic, sleep

from boto3.session import Session
from botocore.exceptions import ClientError

from ecs_stagex.common.logging import LOG
from ecs_stagex.exceptions import DuplicateRegistryKey, MissingRegistryKeys
from ecs_stagex.registry import ParametersRegistry


class SsmRegistry(ParametersRegistry):
    """
    Registry using SSM String parameters, scoped to the account and region of the session.

    :ivar int wait_timeout: how long to wait for keys to exist, in seconds. 0 to fail immediately.
    :ivar int poll_interval: seconds between two attempts while waiting for the keys.
    """

    def __init__(
        self,
        session: Session = None,
        prefix: str = None,
        wait_timeout: int = 0,
        poll_interval: int = 10,
        client=None,
    ):
        super().__init__(prefix)
        if session is None:
            session = Session()
        self.session = session
        self.client = client if client else session.client("ssm")
        self.wait_timeout = wait_timeout if wait_timeout else 0
        self.poll_interval = poll_interval

    def get_value(self, key: str):
        try:
            return self.client.get_parameter(Name=key)["Parameter"]["Value"]
        except ClientError as error:
            if error.response["Error"]["Code"] == "ParameterNotFound":
                return None
            LOG.error(f"{self} - Failed to retrieve {key}")
            raise

    def put_value(self, key: str, value: str) -> None:
        try:
            self.client.put_parameter(
                Name=key, Value=value, Type="String", Overwrite=False
            )
        except ClientError as error:
            if error.response["Error"]["Code"] == "ParameterAlreadyExists":
                raise DuplicateRegistryKey(key) from error
            raise

    def resolve_all(self, names: list) -> dict:
        """
        Resolves all the keys, polling until all of them exist or the wait timeout is reached.
        """
        deadline = monotonic() + self.wait_timeout
        while True:
            try:
                return super().resolve_all(names)
            except MissingRegistryKeys as error:
                remaining = deadline - monotonic()
                if remaining <= 0:
                    raise
                delay = min(self.poll_interval, remaining)
                LOG.info(
                    f"{self} - Waiting {delay:.0f}s for keys {error.keys} to be published"
                )
                sleep(delay)
