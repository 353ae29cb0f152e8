# SPDX-License-Identifier: LGPL-2.1+

import os
from subprocess import CompletedProcess
from unittest import mock

import pytest

from fcrootfs import configure, distros
from fcrootfs.cleanup import ResourceRegistry
from fcrootfs.errors import ConfigurationFailure, NamespaceEntryFailure
from fcrootfs.types import UNKNOWN_GUEST, StepStatus

SHADOW = "root:$6$salt$hash:19000:0:99999:7:::\nnobody:!:19000::::::\n"

def write(path, text):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        f.write(text)

class Guest:
    """Patches mounting so the "mounted" image is a plain directory tree."""

    def __init__(self, files):
        self.files = files
        self.mountpoint = None
        self.umount = mock.Mock()

    def mount(self, path, where):
        self.mountpoint = where
        for name, text in self.files.items():
            write(os.path.join(where, name), text)

    def read(self, name):
        with open(os.path.join(self.mountpoint, name)) as f:
            return f.read()

@pytest.fixture
def nspawn():
    """Exit status of every command run inside the guest, keyed by program name."""
    status = {}

    def fake(args, root, *cmd, env={}):
        return CompletedProcess(list(cmd), status.get(cmd[0], 0))

    with mock.patch.object(configure, "run_guest_command", side_effect=fake) as entry, \
         mock.patch.object(distros, "run_guest_command", side_effect=fake) as steps:
        yield status, entry, steps

def configure_guest(args, tmp_path, guest):
    with mock.patch.object(configure, "mount_image", side_effect=guest.mount), \
         mock.patch.object(configure, "umount_image", guest.umount):
        with ResourceRegistry() as registry:
            report = configure.configure_image(args, registry, str(tmp_path))
            assert len(registry) == 0
    return report

def test_unknown_guest(args, tmp_path, nspawn):
    _, entry, steps = nspawn
    guest = Guest({"etc/shadow": SHADOW})

    report = configure_guest(args, tmp_path, guest)

    assert report.guest == UNKNOWN_GUEST
    assert [r.status for r in report.results] == [StepStatus.skipped, StepStatus.ok]
    entry.assert_not_called()
    steps.assert_not_called()
    assert guest.read("etc/shadow").splitlines()[0] == "root::19000:0:99999:7:::"
    guest.umount.assert_called_once_with(guest.mountpoint)

def test_unknown_guest_is_fatal_when_strict(args, tmp_path, nspawn):
    args.strict = True
    guest = Guest({"etc/shadow": SHADOW})

    with pytest.raises(ConfigurationFailure):
        configure_guest(args, tmp_path, guest)

    guest.umount.assert_called_once_with(guest.mountpoint)

def test_alpine_guest(args, tmp_path, nspawn):
    _, _, steps = nspawn
    guest = Guest({
        "etc/os-release": 'ID=alpine\nVERSION_ID=3.19.1\n',
        "etc/shadow": SHADOW,
        "etc/inittab": "::sysinit:/sbin/openrc sysinit\n",
    })

    report = configure_guest(args, tmp_path, guest)

    assert report.guest.distribution == "alpine"
    assert report.warnings == []
    commands = [c[0][2:] for c in steps.call_args_list]
    assert ("apk", "add", "--no-cache", "openssh", "openrc") in commands
    assert ("rc-update", "add", "sshd", "default") in commands
    assert "ttyS0::respawn:/sbin/getty -L ttyS0 115200 vt100" in guest.read("etc/inittab").splitlines()

def test_failed_steps_are_warnings(args, tmp_path, nspawn):
    status, _, _ = nspawn
    status["apk"] = 1
    status["rc-update"] = 1
    guest = Guest({"etc/os-release": "ID=alpine\n", "etc/shadow": SHADOW})

    report = configure_guest(args, tmp_path, guest)

    assert [r.description for r in report.warnings] == ["Installing openssh, openrc", "Enabling sshd"]
    assert report.warnings[0].detail == "exit status 1"
    assert not report.total_failure
    guest.umount.assert_called_once()

def test_debian_guest(args, tmp_path, nspawn):
    _, _, steps = nspawn
    guest = Guest({"etc/os-release": "ID=debian\n", "etc/passwd": "root:x:0:0:root:/root:/bin/bash\n"})

    report = configure_guest(args, tmp_path, guest)

    assert report.warnings == []
    calls = [(c[0][2:], c[1]["env"]) for c in steps.call_args_list]
    assert (("apt-get", "update"), distros.debian.APT_ENV) in calls
    commands = [cmd for cmd, _ in calls]
    assert ("systemctl", "enable", "ssh.service") in commands
    assert ("systemctl", "enable", "serial-getty@ttyS0.service") in commands
    assert not os.path.exists(os.path.join(guest.mountpoint, "usr/sbin/policy-rc.d"))
    # No shadow file, so the passwd entry loses its password
    assert guest.read("etc/passwd") == "root::0:0:root:/root:/bin/bash\n"

def test_fedora_without_package_manager(args, tmp_path, nspawn):
    guest = Guest({"etc/os-release": 'ID="centos"\n', "etc/shadow": SHADOW})

    report = configure_guest(args, tmp_path, guest)

    assert report.results[0].status == StepStatus.skipped
    assert [r.status for r in report.results[1:]] == [StepStatus.ok] * 3

def test_cannot_enter_guest(args, tmp_path, nspawn):
    status, _, steps = nspawn
    status["true"] = 1
    guest = Guest({"etc/os-release": "ID=alpine\n"})

    with pytest.raises(NamespaceEntryFailure):
        configure_guest(args, tmp_path, guest)

    steps.assert_not_called()
    guest.umount.assert_called_once_with(guest.mountpoint)

def test_no_root_account(tmp_path):
    write(str(tmp_path / "etc/passwd"), "nobody:x:65534:65534::/:/sbin/nologin\n")

    result = configure.clear_root_password(str(tmp_path))

    assert result.status == StepStatus.warning
