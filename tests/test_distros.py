# SPDX-License-Identifier: LGPL-2.1+

import os
from subprocess import CompletedProcess
from unittest import mock

import pytest

from fcrootfs import distros
from fcrootfs.distros import alpine, append_line_once, debian, detect_guest
from fcrootfs.types import UNKNOWN_GUEST, GuestIdentity, StepStatus


def os_release(root, text, path="etc/os-release"):
    p = root / path
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text)

def binary(root, name, d="usr/bin"):
    p = root / d / name
    p.parent.mkdir(parents=True, exist_ok=True)
    p.touch()

def test_list_distros():
    assert distros.list_distros() == ["alpine", "debian", "fedora"]

def test_unknown_distro_module():
    with pytest.raises(RuntimeError):
        distros.get_distro("gentoo")

@pytest.mark.parametrize("text, identity", [
    ('ID=alpine\nVERSION_ID=3.19.1\n', GuestIdentity("alpine", "alpine", "os-release")),
    ('NAME="Ubuntu"\nID=ubuntu\nID_LIKE=debian\n', GuestIdentity("ubuntu", "debian", "os-release")),
    ('ID="rocky"\nID_LIKE="rhel centos fedora"\n', GuestIdentity("rocky", "fedora", "os-release")),
    ("ID='amzn'\n", GuestIdentity("amzn", "fedora", "os-release")),
    ('ID=linuxmint\nID_LIKE="ubuntu debian"\n', GuestIdentity("linuxmint", "debian", "os-release")),
])
def test_os_release(guest_root, text, identity):
    os_release(guest_root, text)
    assert detect_guest(str(guest_root)) == identity

def test_os_release_absolute_symlink_stays_in_guest(guest_root):
    os_release(guest_root, "ID=debian\n", path="usr/lib/os-release")
    os.symlink("/usr/lib/os-release", str(guest_root / "etc/os-release"))

    assert detect_guest(str(guest_root)).distribution == "debian"

def test_usr_lib_fallback(guest_root):
    os_release(guest_root, "ID=fedora\n", path="usr/lib/os-release")
    assert detect_guest(str(guest_root)) == GuestIdentity("fedora", "fedora", "os-release")

def test_unmatched_metadata_is_not_overridden_by_probes(guest_root):
    os_release(guest_root, "ID=arch\n")
    binary(guest_root, "apk", "sbin")

    assert detect_guest(str(guest_root)) == GuestIdentity("arch", None, "os-release")

@pytest.mark.parametrize("binaries, identity", [
    ([("apk", "sbin")], GuestIdentity("alpine", "alpine", "probe:apk")),
    ([("apt", "usr/bin"), ("apk", "sbin")], GuestIdentity("debian", "debian", "probe:apt")),
    ([("yum", "usr/bin")], GuestIdentity("fedora", "fedora", "probe:yum")),
    ([("yum", "usr/bin"), ("dnf", "usr/bin")], GuestIdentity("fedora", "fedora", "probe:dnf")),
])
def test_probe_order(guest_root, binaries, identity):
    for name, d in binaries:
        binary(guest_root, name, d)
    assert detect_guest(str(guest_root)) == identity

def test_dangling_binary_symlink_counts(guest_root):
    (guest_root / "sbin").mkdir()
    os.symlink("/bin/busybox", str(guest_root / "sbin/apk"))

    assert detect_guest(str(guest_root)).distribution == "alpine"

def test_nothing_to_go_on(guest_root):
    assert detect_guest(str(guest_root)) == UNKNOWN_GUEST

def test_append_line_once(tmp_path):
    inittab = tmp_path / "etc/inittab"
    inittab.parent.mkdir()
    inittab.write_text("::sysinit:/sbin/openrc sysinit")

    assert append_line_once(str(inittab), alpine.SERIAL_GETTY) is True
    assert append_line_once(str(inittab), alpine.SERIAL_GETTY) is False

    lines = inittab.read_text().splitlines()
    assert lines == ["::sysinit:/sbin/openrc sysinit", alpine.SERIAL_GETTY]

def test_append_line_creates_file(tmp_path):
    path = tmp_path / "etc/inittab"
    assert append_line_once(str(path), "x") is True
    assert path.read_text() == "x\n"

def test_every_family_module_loads():
    for name in distros.list_distros():
        family = distros.get_distro(name)
        assert family.IDS
        assert callable(family.configure)
    assert distros.distro_for_id("ubuntu") == "debian"
    assert distros.distro_for_id("almalinux") == "fedora"
    assert distros.distro_for_id("arch") is None

def test_debian_keeps_shipped_policy_rc_d(args, guest_root):
    shipped = guest_root / debian.POLICY_RC_D
    shipped.parent.mkdir(parents=True)
    shipped.write_text("#!/bin/sh\nexit 0\n")

    seen = []

    def fake(args, root, *cmd, env={}):
        seen.append((cmd[0], shipped.read_text()))
        return CompletedProcess(list(cmd), 0)

    with mock.patch.object(distros, "run_guest_command", side_effect=fake):
        results = debian.configure(args, str(guest_root))

    assert [r for r in results if r.failed] == []
    assert ("apt-get", "#!/bin/sh\nexit 101\n") in seen
    assert shipped.read_text() == "#!/bin/sh\nexit 0\n"
    assert os.listdir(str(shipped.parent)) == ["policy-rc.d"]

def test_debian_policy_rc_d_failure_is_a_warning(args, guest_root):
    # usr/sbin being a file makes creating policy-rc.d impossible
    (guest_root / "usr").mkdir()
    (guest_root / "usr/sbin").write_text("")

    with mock.patch.object(distros, "run_guest_command",
                           return_value=CompletedProcess([], 0)) as nspawn:
        results = debian.configure(args, str(guest_root))

    assert results[0].status == StepStatus.warning
    assert [r.description for r in results if r.failed] == [results[0].description]
    commands = [c[0][2] for c in nspawn.call_args_list]
    assert commands.count("apt-get") == 2
