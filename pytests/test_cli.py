# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import json
from os import path

from pytest import raises

from ecs_stagex import __version__
from ecs_stagex.cli import main, main_parser
from ecs_stagex.common.settings import StageXSettings
from ecs_stagex.registry import InMemoryRegistry


def test_parser():
    parser = main_parser()
    args = parser.parse_args(
        ["network", "render", "-n", "expense", "--zones", "3", "--vpc-cidr", "10.1.0.0/16"]
    )
    assert args.stage == "network"
    assert args.command == "render"
    assert args.ZonesCount == 3
    assert args.VpcCidr == "10.1.0.0/16"

    args = parser.parse_args(
        ["services", "up", "-n", "expense", "--wait-for-keys", "120", "--wait"]
    )
    assert args.stage == "services"
    assert args.WaitForKeys == 120
    assert args.Wait is True
    with raises(SystemExit):
        parser.parse_args(["network", "destroy", "-n", "expense"])
    with raises(SystemExit):
        parser.parse_args(["network", "render"])


def test_version(capsys):
    assert main(["version"]) == 0
    assert __version__ in capsys.readouterr().out


def test_render_network(tmp_path):
    assert main(["network", "render", "-n", "expense", "-d", str(tmp_path)]) == 0
    template_path = path.join(str(tmp_path), "expense-network.json")
    assert path.exists(template_path)
    with open(template_path) as template_fd:
        template = json.load(template_fd)
    assert "PrivateSubnet1Export" in template["Resources"]


def test_render_network_yaml(tmp_path):
    assert (
        main(["network", "render", "-n", "expense", "-d", str(tmp_path), "--format", "yaml"])
        == 0
    )
    assert path.exists(path.join(str(tmp_path), "expense-network.yaml"))


def test_invalid_network(tmp_path):
    assert (
        main(
            [
                "network",
                "render",
                "-n",
                "expense",
                "-d",
                str(tmp_path),
                "--vpc-cidr",
                "10.0.0.0/24",
                "--zones",
                "3",
                "--subnet-mask",
                "26",
            ]
        )
        == 1
    )
    assert not path.exists(path.join(str(tmp_path), "expense-network.json"))


def test_render_services(tmp_path, monkeypatch, network_registry):
    monkeypatch.setattr(StageXSettings, "get_registry", lambda self: network_registry)
    assert (
        main(
            [
                "services",
                "render",
                "-n",
                "expense",
                "-d",
                str(tmp_path),
                "--vpc-cidr",
                "10.0.0.0/16",
            ]
        )
        == 0
    )
    assert path.exists(path.join(str(tmp_path), "expense-services.json"))
    with open(path.join(str(tmp_path), "expense-services.params.json")) as params_fd:
        assert json.load(params_fd) == [
            {"ParameterKey": "LogGroupsRetentionInDays", "ParameterValue": "14"}
        ]


def test_services_missing_network(tmp_path, monkeypatch):
    monkeypatch.setattr(
        StageXSettings, "get_registry", lambda self: InMemoryRegistry()
    )
    assert (
        main(
            [
                "services",
                "render",
                "-n",
                "expense",
                "-d",
                str(tmp_path),
                "--vpc-cidr",
                "10.0.0.0/16",
            ]
        )
        == 1
    )
    assert not path.exists(path.join(str(tmp_path), "expense-services.json"))
