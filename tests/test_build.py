# SPDX-License-Identifier: LGPL-2.1+

import sys
from unittest import mock

import pytest

from fcrootfs import docker, main
from fcrootfs.errors import FormatFailure
from fcrootfs.types import (
    UNKNOWN_GUEST,
    ConfigurationReport,
    KeyPair,
    ResolvedImage,
    SizePlan,
)
from fcrootfs.verbs import build


class Phases:
    """Stand-ins for each build phase that record what they acquire and release."""

    def __init__(self):
        self.log = []

    def acquire(self, registry, name):
        self.log.append("acquire " + name)
        return registry.push("Releasing " + name, self.log.append, "release " + name)

    def resolve_image(self, args, registry):
        self.acquire(registry, "image")
        return ResolvedImage("fc-rootfs-temp:build-1", True)

    def setup_workspace(self, registry):
        self.acquire(registry, "workspace")
        return "/var/tmp/fc-rootfs-x"

    def extract_tree(self, args, registry, image, workspace):
        self.acquire(registry, "container")
        return workspace + "/root"

    def plan_size(self, root, margin):
        return SizePlan(1000, margin, 1000 + margin)

    def provision_credentials(self, args, workspace, root):
        self.log.append("credentials")
        return KeyPair("/src/alpine-latest.id_rsa", "/src/alpine-latest.id_rsa.pub")

    def package_image(self, args, root, plan):
        self.log.append("package")

    def configure_image(self, args, registry, workspace):
        registry.release(self.acquire(registry, "mount"))
        return ConfigurationReport(UNKNOWN_GUEST, [])

@pytest.fixture
def phases():
    p = Phases()
    names = ["resolve_image", "setup_workspace", "extract_tree", "plan_size",
             "provision_credentials", "package_image", "configure_image"]
    with mock.patch.multiple(build, **{n: getattr(p, n) for n in names}):
        yield p

def test_phases_run_in_order_and_release_everything(args, phases):
    result = build.build_stuff(args)

    assert phases.log == [
        "acquire image",
        "acquire workspace",
        "acquire container",
        "credentials",
        "package",
        "acquire mount",
        "release mount",
        "release container",
        "release workspace",
        "release image",
    ]
    assert result.plan.total_bytes == 1000 + args.margin
    assert result.key.private_key.endswith("alpine-latest.id_rsa")

def test_failure_releases_in_reverse_order(args, phases):
    with mock.patch.object(build, "package_image", side_effect=FormatFailure("mkfs.ext4 failed")):
        with pytest.raises(FormatFailure):
            build.build_stuff(args)

    assert phases.log == [
        "acquire image",
        "acquire workspace",
        "acquire container",
        "credentials",
        "release container",
        "release workspace",
        "release image",
    ]

def test_input_error_exit_status(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["fc-rootfs", "-i", "alpine", "-f", "Dockerfile"])

    with mock.patch.object(docker, "run") as run:
        with pytest.raises(SystemExit) as e:
            main.main()

    assert e.value.code == 3
    run.assert_not_called()
    assert "Cannot specify both" in capsys.readouterr().err

def test_usage_hints(args, capsys):
    result = build.BuildResult(ResolvedImage("alpine:latest", False),
                               SizePlan(1, 2, 3),
                               KeyPair(args.invocation_dir + "/alpine-latest.id_rsa",
                                       args.invocation_dir + "/alpine-latest.id_rsa.pub"),
                               ConfigurationReport(UNKNOWN_GUEST, []))

    build.print_usage(args, result)

    err = capsys.readouterr().err
    assert "--rootfs-path alpine-latest.ext4" in err
    assert "ssh -i alpine-latest.id_rsa root@" in err

def test_root_checked_once(args):
    verb = mock.Mock(NEEDS_ROOT=True)
    with mock.patch.object(main, "load_args", return_value=args), \
         mock.patch.object(main.verbs, "get_verb", return_value=verb), \
         mock.patch.object(main, "check_root") as check_root:
        main.run()

    check_root.assert_called_once_with()
    verb.do.assert_called_once_with(args)

def test_environment_check_leaves_root_to_main(args):
    with mock.patch.object(build, "check_tools") as check_tools, \
         mock.patch.object(docker, "check_runtime") as check_runtime, \
         mock.patch("os.getuid", return_value=1000):
        build.check_environment(args)

    assert check_tools.call_args[0][0][0] == "docker"
    check_runtime.assert_called_once_with(args)
