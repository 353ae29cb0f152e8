# SPDX-License-Identifier: LGPL-2.1+

import os
from subprocess import DEVNULL, CalledProcessError, run

from .errors import FormatFailure, InputError, NamespaceEntryFailure
from .types import CommandLineArguments, SizePlan
from .ui import complete_step, format_bytes, print_step, run_visible, warn
from .utils import unlink_try_hard


def check_output(args: CommandLineArguments) -> None:
    if not os.path.lexists(args.output):
        return

    if not args.force:
        raise InputError("Output file " + args.output + " exists already. (Consider invocation with --force.)")

    with complete_step('Removing output file ' + args.output):
        unlink_try_hard(args.output)

def allocate_sparse(path: str, size: int) -> None:
    # O_EXCL: we never scribble over something that appeared since check_output()
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL | os.O_CLOEXEC, 0o644)
    try:
        os.ftruncate(fd, size)
    except OSError:
        os.unlink(path)
        raise
    finally:
        os.close(fd)

def mkfs_ext4(args: CommandLineArguments, path: str, root: str) -> None:
    run_visible(["mkfs.ext4",
                 "-F",
                 "-q",
                 "-L", args.label,
                 "-d", root,
                 path],
                check=True, timeout=args.timeout)

def package_image(args: CommandLineArguments, root: str, plan: SizePlan) -> None:
    """Create the output image, populated from root in the same step.

    Either this returns with a complete filesystem at args.output, or
    args.output does not exist.
    """

    created = False
    try:
        with complete_step('Allocating ' + format_bytes(plan.total_bytes) + ' sparse image file'):
            allocate_sparse(args.output, plan.total_bytes)
            created = True

        with complete_step('Creating ext4 filesystem in ' + args.output):
            try:
                mkfs_ext4(args, args.output, root)
            except CalledProcessError as e:
                raise FormatFailure("mkfs.ext4 failed with exit status {}".format(e.returncode))
    except BaseException:
        if created:
            print_step("Removing incomplete image " + args.output + ".")
            unlink_try_hard(args.output)
        raise

def mount_image(path: str, where: str) -> None:
    try:
        run_visible(["mount", "-o", "loop", path, where], check=True)
    except CalledProcessError as e:
        raise NamespaceEntryFailure("Failed to mount {} (exit status {})".format(path, e.returncode))

def umount_image(where: str) -> None:
    """Unmount where, falling back to a lazy unmount if something still holds it."""

    if not os.path.ismount(where):
        return

    c = run(["umount", where], stdout=DEVNULL, stderr=DEVNULL)
    if c.returncode == 0:
        return

    warn("Unmounting {} failed, detaching lazily", where)
    c = run(["umount", "--lazy", where], stdout=DEVNULL, stderr=DEVNULL)
    if c.returncode != 0:
        raise NamespaceEntryFailure("Failed to unmount " + where)

def print_output_size(args: CommandLineArguments) -> None:
    st = os.stat(args.output)
    print_step("Resulting image size is " + format_bytes(st.st_size) + ", consumes " + format_bytes(st.st_blocks * 512) + ".")
