# SPDX-License-Identifier: LGPL-2.1+

import os
import os.path
import shutil
import time
import uuid
from subprocess import CompletedProcess
from typing import Callable, Dict, List, Sequence

from .errors import HostEnvironmentError
from .types import CommandLineArguments
from .ui import run_visible


def patch_file(filepath: str, line_rewriter: Callable[[str], str]) -> None:
    temp_new_filepath = filepath + ".tmp.new"

    with open(filepath, "r") as old:
        with open(temp_new_filepath, "w") as new:
            for line in old:
                new.write(line_rewriter(line))

    shutil.copystat(filepath, temp_new_filepath)
    st = os.stat(filepath)
    os.chown(temp_new_filepath, st.st_uid, st.st_gid)
    os.remove(filepath)
    shutil.move(temp_new_filepath, filepath)

def unique_name(prefix: str) -> str:
    """A name no concurrent invocation will pick: time, pid and randomness."""
    return "{}-{}-{}-{}".format(prefix, int(time.time()), os.getpid(), uuid.uuid4().hex[:8])

def run_guest_command(args: CommandLineArguments, root: str, *cmd: str, env: Dict[str, str]={}) -> CompletedProcess:
    """Run a command inside the guest tree at root, as if it were booted.

    The return code is handed back to the caller; nothing here decides
    whether a failure is fatal.
    """

    cmdline = ["systemd-nspawn",
               "--quiet",
               "--directory=" + root,
               "--machine=" + unique_name("fc-rootfs"),
               "--as-pid2",
               "--register=no",
               "--timezone=off",
               "--console=pipe",
               "--setenv=SYSTEMD_OFFLINE=1"]

    if args.with_network:
        # We share the host network namespace, so use the same resolver
        cmdline += ["--bind-ro=/etc/resolv.conf"]
    else:
        cmdline += ["--private-network"]

    cmdline += ["--setenv={}={}".format(k, v) for k, v in env.items()]

    cmdline += ['--', *cmd]
    return run_visible(cmdline, timeout=args.timeout)

def guest_path(root: str, path: str) -> str:
    return os.path.join(root, path.lstrip("/"))

def guest_has_binary(root: str, name: str) -> bool:
    for d in ("usr/bin", "bin", "usr/sbin", "sbin"):
        candidate = os.path.join(root, d, name)
        # Symlinks are resolved relative to the host, so only look at the entry itself
        if os.path.lexists(candidate):
            return True
    return False

def mkdir_last(path: str, mode: int=0o777) -> str:
    """Create directory path

    Only the final component will be created, so this is different than mkdirs().
    """
    try:
        os.mkdir(path, mode)
    except FileExistsError:
        if not os.path.isdir(path):
            raise
    return path

def unlink_try_hard(path: str) -> None:
    try:
        os.unlink(path)
        return
    except FileNotFoundError:
        return
    except IsADirectoryError:
        pass
    except PermissionError:
        # Linux reports EPERM rather than EISDIR for unlink() on a directory
        if not os.path.isdir(path) or os.path.islink(path):
            raise

    shutil.rmtree(path)

def check_root() -> None:
    if os.getuid() != 0:
        raise HostEnvironmentError("Must be invoked as root.")

def check_tools(tools: Sequence[str]) -> None:
    missing = [t for t in tools if shutil.which(t) is None]
    if missing:
        raise HostEnvironmentError("Missing required command: " + ", ".join(missing))

def prepend_to_environ_path(paths: List[str]) -> None:
    if not paths:
        return

    original_path = os.getenv("PATH", None)
    new_path = ":".join(paths)

    if original_path is None:
        os.environ["PATH"] = new_path
    else:
        os.environ["PATH"] = new_path + ":" + original_path

def output_stem(output: str) -> str:
    name = os.path.basename(output)
    if name.endswith(".ext4"):
        name = name[:-len(".ext4")]
    return name

def resolve_guest_path(root: str, path: str) -> str:
    """Map a guest path to the host, following symlinks inside the guest.

    Absolute symlink targets are interpreted relative to root, not to
    the host's /.
    """
    p = guest_path(root, path)
    for _ in range(40):
        if not os.path.islink(p):
            return p
        target = os.readlink(p)
        if os.path.isabs(target):
            p = guest_path(root, target)
        else:
            p = os.path.join(os.path.dirname(p), target)
    raise OSError("Too many levels of symbolic links: " + path)
