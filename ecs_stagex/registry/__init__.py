# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Key/value registry used to hand over identifiers from one stage to the next.

A stage publishes its identifiers under well known keys, and the stages depending on it
resolve them when rendering their template. The registry is single-writer, multi-readers.
"""

from __future__ import annotations

from ecs_stagex.common.logging import LOG
from ecs_stagex.exceptions import DuplicateRegistryKey, MissingRegistryKeys
from ecs_stagex.registry.registry_params import KEY_RE


class ParametersRegistry:
    """
    Base class for the registries. Sub-classes implement how to store and fetch the values.

    :ivar str prefix: prefix prepended to every key name.
    """

    def __init__(self, prefix: str = None):
        self.prefix = prefix if prefix else ""
        if self.prefix and not KEY_RE.match(self.prefix):
            raise ValueError(
                "Registry prefix", self.prefix, "must match", KEY_RE.pattern
            )

    def __repr__(self):
        return f"{self.__class__.__name__}(prefix={self.prefix!r})"

    def key(self, name: str) -> str:
        """
        Full key name for a given registry key name

        :param str name:
        :rtype: str
        """
        if not isinstance(name, str) or not KEY_RE.match(name):
            raise ValueError("Registry key", name, "must match", KEY_RE.pattern)
        return f"{self.prefix}{name}"

    def get_value(self, key: str):
        """
        Returns the value stored for the full key, None if the key does not exist.
        """
        raise NotImplementedError

    def put_value(self, key: str, value: str) -> None:
        """
        Stores the value for the full key. Must raise DuplicateRegistryKey if it already exists.
        """
        raise NotImplementedError

    def publish(self, name: str, value: str) -> str:
        """
        Creates the key in the registry.

        :param str name: registry key name
        :param str value: value to store
        :return: the full key name
        :raises DuplicateRegistryKey: if the key already exists
        """
        if not isinstance(value, str):
            raise TypeError("Registry values must be", str, "got", type(value))
        key = self.key(name)
        self.put_value(key, value)
        LOG.info(f"{self} - Published {key}")
        return key

    def resolve(self, name: str) -> str:
        """
        Resolves a single key

        :param str name:
        :raises MissingRegistryKeys: when the key is not set
        """
        return self.resolve_all([name])[name]

    def resolve_all(self, names: list) -> dict:
        """
        Resolves all the keys. All keys are looked up before raising, so that the error
        reports every key which is missing.

        :param list[str] names:
        :return: mapping of key name to value
        :rtype: dict
        :raises MissingRegistryKeys: when at least one key could not be resolved
        """
        values = {}
        missing = []
        for name in names:
            value = self.get_value(self.key(name))
            if value is None:
                missing.append(self.key(name))
            else:
                LOG.debug(f"{self} - {self.key(name)} resolved to {value}")
                values[name] = value
        if missing:
            raise MissingRegistryKeys(missing)
        return values


class InMemoryRegistry(ParametersRegistry):
    """
    Registry storing the values in a dict. Used for rendering offline and for tests.
    """

    def __init__(self, values: dict = None, prefix: str = None):
        super().__init__(prefix)
        self.values = dict(values) if values else {}

    def get_value(self, key: str):
        return self.values.get(key)

    def put_value(self, key: str, value: str) -> None:
        if key in self.values:
            raise DuplicateRegistryKey(key)
        self.values[key] = value
