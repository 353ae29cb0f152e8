# SPDX-License-Identifier: LGPL-2.1+

from typing import List, Optional

from ..types import CommandLineArguments, StepResult, StepStatus
from ..ui import warn
from ..utils import guest_has_binary
from . import enable_systemd_units, guest_step

NAME = "Fedora"
IDS = ["fedora", "rhel", "centos", "amzn", "rocky", "almalinux"]

PACKAGES = {
    "dnf": ["openssh-server", "iproute", "passwd", "systemd-udev"],
    "yum": ["openssh-server", "iproute", "passwd"],
}

def package_manager(root: str) -> Optional[str]:
    for pm in ("dnf", "yum"):
        if guest_has_binary(root, pm):
            return pm
    return None

def configure(args: CommandLineArguments, root: str) -> List[StepResult]:
    results = []

    pm = package_manager(root)
    if pm is None:
        warn("Neither dnf nor yum found in the image, not installing packages")
        results.append(StepResult("Installing packages", StepStatus.skipped, "no package manager"))
    else:
        packages = PACKAGES[pm]
        results.append(guest_step(args, root, "Installing " + ", ".join(packages),
                                  pm, "install", "-y", *packages))

    results += enable_systemd_units(args, root, "sshd.service")
    return results
