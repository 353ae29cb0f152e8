# SPDX-License-Identifier: LGPL-2.1+

import importlib
import os
import pkgutil
import shlex
from typing import Callable, Dict, List, Optional, cast

from ..types import (
    UNKNOWN_GUEST,
    CommandLineArguments,
    GuestIdentity,
    StepResult,
    StepStatus,
)
from ..ui import warn
from ..utils import guest_has_binary, resolve_guest_path, run_guest_command


class Distribution:  # Inherit from typing.Protocol, once it's available
    NAME: str
    IDS: List[str]

    @staticmethod
    def configure(args: CommandLineArguments, root: str) -> List[StepResult]:
        ...

def get_distro(distroname: str) -> Distribution:
    try:
        return cast(Distribution, importlib.import_module(__package__ + '.' + distroname))
    except ImportError:
        raise RuntimeError('Unknown distro "%s".' % distroname)

def list_distros() -> List[str]:
    return sorted(name for _, name, _ in pkgutil.iter_modules(__path__))

def distro_for_id(os_id: str) -> Optional[str]:
    for name in list_distros():
        if os_id in get_distro(name).IDS:
            return name
    return None

def read_os_release(root: str) -> Optional[Dict[str, str]]:
    for candidate in ("/etc/os-release", "/usr/lib/os-release"):
        try:
            f = open(resolve_guest_path(root, candidate))
        except (FileNotFoundError, NotADirectoryError):
            continue

        fields: Dict[str, str] = {}
        with f:
            for ln in f:
                ln = ln.strip()
                if not ln or ln.startswith("#") or "=" not in ln:
                    continue
                key, value = ln.split("=", 1)
                try:
                    fields[key] = " ".join(shlex.split(value))
                except ValueError:
                    fields[key] = value.strip("\"'")
        return fields

    return None

# Detection predicates, tried in order until one returns an identity.

Detector = Callable[[str], Optional[GuestIdentity]]

def detect_os_release(root: str) -> Optional[GuestIdentity]:
    fields = read_os_release(root)
    if fields is None:
        return None

    os_id = fields.get("ID", "").lower()
    d = distro_for_id(os_id)
    if d is None:
        for like in fields.get("ID_LIKE", "").lower().split():
            d = distro_for_id(like)
            if d is not None:
                break

    # The metadata is authoritative: an ID we don't know stays unknown
    return GuestIdentity(id=os_id or "unknown", distribution=d, source="os-release")

def probe(binary: str, distroname: str) -> Detector:
    def detector(root: str) -> Optional[GuestIdentity]:
        if not guest_has_binary(root, binary):
            return None
        return GuestIdentity(id=distroname, distribution=distroname, source="probe:" + binary)
    return detector

DETECTORS: List[Detector] = [
    detect_os_release,
    probe("apt", "debian"),
    probe("apk", "alpine"),
    probe("dnf", "fedora"),
    probe("yum", "fedora"),
]

def detect_guest(root: str) -> GuestIdentity:
    for detector in DETECTORS:
        identity = detector(root)
        if identity is not None:
            return identity
    return UNKNOWN_GUEST

# Helpers for the distribution modules

def guest_step(args: CommandLineArguments, root: str, description: str, *cmd: str, env: Dict[str, str]={}) -> StepResult:
    c = run_guest_command(args, root, *cmd, env=env)
    if c.returncode == 0:
        return StepResult(description, StepStatus.ok)

    warn("{} failed with exit status {}", description, c.returncode)
    return StepResult(description, StepStatus.warning, "exit status {}".format(c.returncode))

def enable_systemd_units(args: CommandLineArguments, root: str, *units: str) -> List[StepResult]:
    results = []
    for unit in (*units, "serial-getty@ttyS0.service"):
        results.append(guest_step(args, root, "Enabling " + unit, "systemctl", "enable", unit))
    return results

def append_line_once(path: str, line: str) -> bool:
    """Append line to path unless it is already there. Returns whether it was added."""

    try:
        with open(path) as f:
            existing = f.read()
    except FileNotFoundError:
        existing = ""

    if line in existing.splitlines():
        return False

    os.makedirs(os.path.dirname(path), 0o755, exist_ok=True)
    with open(path, "a") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(line + "\n")
    return True
