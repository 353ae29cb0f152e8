# SPDX-License-Identifier: LGPL-2.1+

from typing import List

from ..types import CommandLineArguments, StepResult, StepStatus
from ..utils import resolve_guest_path
from . import append_line_once, guest_step

NAME = "Alpine"
IDS = ["alpine"]
PACKAGES = ["openssh", "openrc"]

SERIAL_GETTY = "ttyS0::respawn:/sbin/getty -L ttyS0 115200 vt100"

def enable_serial_console(root: str) -> StepResult:
    description = "Adding serial console to /etc/inittab"
    try:
        added = append_line_once(resolve_guest_path(root, "/etc/inittab"), SERIAL_GETTY)
    except OSError as e:
        return StepResult(description, StepStatus.warning, str(e))
    return StepResult(description, StepStatus.ok, "" if added else "already present")

def configure(args: CommandLineArguments, root: str) -> List[StepResult]:
    return [
        guest_step(args, root, "Installing " + ", ".join(PACKAGES),
                   "apk", "add", "--no-cache", *PACKAGES),
        guest_step(args, root, "Enabling sshd",
                   "rc-update", "add", "sshd", "default"),
        enable_serial_console(root),
    ]
