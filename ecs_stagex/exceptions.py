#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for ECS StageX
"""


class StageXBaseException(Exception):
    """
    Top class for StageX Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class NetworkValidationError(StageXBaseException, ValueError):
    """
    Exception when the network definition cannot be rendered, i.e. the CIDR cannot be carved into the subnets
    """


class WorkloadValidationError(StageXBaseException, ValueError):
    """
    Exception when a workload definition is invalid, i.e. wrong replica count or Fargate CPU/RAM combination
    """


class RegistryError(StageXBaseException):
    """
    Top class for the parameters registry exceptions
    """


class MissingRegistryKeys(RegistryError, LookupError):
    """
    Exception when one or more keys could not be resolved from the registry.
    """

    def __init__(self, keys, *args):
        self.keys = list(keys)
        super().__init__(
            f"Unable to resolve registry keys: {', '.join(self.keys)}", *args
        )


class DuplicateRegistryKey(RegistryError, KeyError):
    """
    Exception when trying to publish a key that already exists in the registry
    """

    def __init__(self, key, *args):
        self.key = key
        super().__init__(f"Registry key {key} already exists", *args)
