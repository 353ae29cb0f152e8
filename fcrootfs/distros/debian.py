# SPDX-License-Identifier: LGPL-2.1+

import os
from typing import List

from ..types import CommandLineArguments, StepResult, StepStatus
from ..ui import warn
from . import enable_systemd_units, guest_step

NAME = "Debian"
IDS = ["debian", "ubuntu"]
PACKAGES = ["openssh-server", "iproute2", "udev"]

APT_ENV = {'DEBIAN_FRONTEND': 'noninteractive', 'DEBCONF_NONINTERACTIVE_SEEN': 'true'}

POLICY_RC_D = "usr/sbin/policy-rc.d"

def deny_service_startup(policyrcd: str, backup: str) -> StepResult:
    # Debian policy is to start daemons right after installing them, which
    # we don't want inside the namespace. A policy-rc.d that denies every
    # startup prevents that. A policy-rc.d the image ships is set aside
    # and put back afterwards.
    # See https://people.debian.org/~hmh/invokerc.d-policyrc.d-specification.txt
    description = "Disabling service startup"
    try:
        if os.path.lexists(policyrcd):
            os.rename(policyrcd, backup)
        os.makedirs(os.path.dirname(policyrcd), 0o755, exist_ok=True)
        with open(policyrcd, "w") as f:
            f.write("#!/bin/sh\n")
            f.write("exit 101\n")
        os.chmod(policyrcd, 0o755)
    except OSError as e:
        if os.path.lexists(backup):
            os.replace(backup, policyrcd)
        warn("{} failed: {}", description, e)
        return StepResult(description, StepStatus.warning, str(e))
    return StepResult(description, StepStatus.ok)

def restore_service_startup(policyrcd: str, backup: str) -> StepResult:
    description = "Restoring service startup policy"
    try:
        if os.path.lexists(backup):
            os.replace(backup, policyrcd)
        else:
            os.unlink(policyrcd)
    except OSError as e:
        warn("{} failed: {}", description, e)
        return StepResult(description, StepStatus.warning, str(e))
    return StepResult(description, StepStatus.ok)

def configure(args: CommandLineArguments, root: str) -> List[StepResult]:
    policyrcd = os.path.join(root, POLICY_RC_D)
    backup = policyrcd + ".fc-rootfs-orig"

    denied = deny_service_startup(policyrcd, backup)
    results = [denied]
    try:
        results += [
            guest_step(args, root, "Updating package lists",
                       "apt-get", "update", env=APT_ENV),
            guest_step(args, root, "Installing " + ", ".join(PACKAGES),
                       "apt-get", "--assume-yes", "install", *PACKAGES, env=APT_ENV),
        ]
    finally:
        if not denied.failed:
            results.append(restore_service_startup(policyrcd, backup))

    results += enable_systemd_units(args, root, "ssh.service")
    return results
