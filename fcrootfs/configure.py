# SPDX-License-Identifier: LGPL-2.1+

import os

from . import distros
from .cleanup import ResourceRegistry
from .errors import ConfigurationFailure, NamespaceEntryFailure
from .image import mount_image, umount_image
from .types import (
    CommandLineArguments,
    ConfigurationReport,
    StepResult,
    StepStatus,
)
from .ui import complete_step, print_step, warn
from .utils import (
    mkdir_last,
    patch_file,
    resolve_guest_path,
    run_guest_command,
    unique_name,
)


def check_namespace_entry(args: CommandLineArguments, root: str) -> None:
    c = run_guest_command(args, root, "true")
    if c.returncode != 0:
        raise NamespaceEntryFailure("Cannot enter the image at {} (exit status {})".format(root, c.returncode))

def _blank_root_password(line: str) -> str:
    if line.startswith('root:'):
        return ':'.join(['root', ''] + line.split(':')[2:])
    return line

def _has_root_entry(path: str) -> bool:
    with open(path) as f:
        return any(line.startswith('root:') for line in f)

def clear_root_password(root: str) -> StepResult:
    "Delete the root password so the console logs in without one"

    description = "Deleting root password"
    # Same effect as `passwd -d root`: shadow if it has the entry, passwd otherwise
    for candidate in ("/etc/shadow", "/etc/passwd"):
        try:
            path = resolve_guest_path(root, candidate)
            if not _has_root_entry(path):
                continue
            patch_file(path, _blank_root_password)
        except FileNotFoundError:
            continue
        except OSError as e:
            warn("{} failed: {}", description, e)
            return StepResult(description, StepStatus.warning, str(e))
        return StepResult(description, StepStatus.ok, candidate)

    warn("No root account found in the image, not touching passwords")
    return StepResult(description, StepStatus.warning, "no root entry")

def print_report(report: ConfigurationReport) -> None:
    for r in report.results:
        line = "{}: {}".format(r.description, r.status.name)
        if r.detail:
            line += " ({})".format(r.detail)
        print_step(line)

    if report.total_failure:
        warn("Every configuration step failed; the image is probably not reachable over SSH")
    elif report.warnings:
        warn("{} of {} configuration steps failed", len(report.warnings), len(report.results))

def configure_image(args: CommandLineArguments, registry: ResourceRegistry, workspace: str) -> ConfigurationReport:
    """Mount the packaged image and make it usable as a development VM.

    Individual steps are best-effort and come back as warnings. Only
    failing to mount, enter or unmount the image is fatal.
    """

    mountpoint = mkdir_last(os.path.join(workspace, unique_name("loop-mount")), 0o755)
    token = registry.push("Unmounting " + mountpoint, umount_image, mountpoint)

    with complete_step("Mounting " + args.output):
        mount_image(args.output, mountpoint)

    guest = distros.detect_guest(mountpoint)
    results = []

    if guest.distribution is None:
        warn("Unknown distribution: {}, skipping package installation", guest.id)
        results.append(StepResult("Installing SSH server", StepStatus.skipped,
                                  "unknown distribution " + guest.id))
    else:
        distro = distros.get_distro(guest.distribution)
        with complete_step("Configuring {} guest (detected {} via {})".format(distro.NAME, guest.id, guest.source)):
            check_namespace_entry(args, mountpoint)
            results += distro.configure(args, mountpoint)

    results.append(clear_root_password(mountpoint))

    with complete_step("Unmounting " + args.output):
        registry.release(token)

    report = ConfigurationReport(guest=guest, results=results)
    print_report(report)

    if args.strict and report.warnings:
        raise ConfigurationFailure("{} configuration step(s) failed".format(len(report.warnings)))

    return report
