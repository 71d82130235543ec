# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

""""
Common parameters for CFN.
All the titles, marked `_T` are strings used the same way across all imports.

You can change the names *values* so long as you keep it Alphanumerical [a-zA-Z0-9]
"""

from troposphere import Parameter as CfnParameter


class Parameter(CfnParameter):
    """
    Class to extend the default Parameter behaviour
    """

    def __init__(
        self, title, return_value=None, group_label=None, label=None, **kwargs
    ):
        self.return_value = return_value
        self.group_label = group_label if group_label else "Uncategorized parameters"
        self.label = label
        super().__init__(title, **kwargs)


LOG_RETENTION_T = "LogGroupsRetentionInDays"
LOG_RETENTION = Parameter(
    LOG_RETENTION_T,
    group_label="Logging settings",
    Type="Number",
    AllowedValues=[1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731],
    Default=14,
)
