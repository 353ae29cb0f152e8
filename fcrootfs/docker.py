# SPDX-License-Identifier: LGPL-2.1+

# Thin wrapper around the container runtime's command line. Anything
# that speaks the docker CLI dialect (docker, podman) works.

import subprocess
from subprocess import DEVNULL, PIPE, CalledProcessError, Popen, run

from .errors import (
    BuildFailure,
    CommandTimeout,
    FetchFailure,
    HostEnvironmentError,
)
from .types import CommandLineArguments
from .ui import run_visible


def check_runtime(args: CommandLineArguments) -> None:
    try:
        c = run([args.runtime, "info"], stdout=DEVNULL, stderr=DEVNULL, timeout=args.timeout)
    except FileNotFoundError:
        raise HostEnvironmentError("Missing required command: " + args.runtime)
    except subprocess.TimeoutExpired:
        raise HostEnvironmentError("{} is not responding".format(args.runtime))
    if c.returncode != 0:
        raise HostEnvironmentError("{} is not running or not accessible".format(args.runtime))

def image_exists(args: CommandLineArguments, tag: str) -> bool:
    c = run([args.runtime, "image", "inspect", tag], stdout=DEVNULL, stderr=DEVNULL)
    return c.returncode == 0

def container_exists(args: CommandLineArguments, name: str) -> bool:
    c = run([args.runtime, "container", "inspect", name], stdout=DEVNULL, stderr=DEVNULL)
    return c.returncode == 0

def pull_image(args: CommandLineArguments, tag: str) -> None:
    try:
        run_visible([args.runtime, "pull", tag], check=True, timeout=args.timeout)
    except CalledProcessError as e:
        raise FetchFailure("Failed to pull {} (exit status {})".format(tag, e.returncode))

def build_image(args: CommandLineArguments, dockerfile: str, context: str, tag: str) -> None:
    try:
        run_visible([args.runtime, "build", "-f", dockerfile, "-t", tag, context],
                    check=True, timeout=args.timeout)
    except CalledProcessError as e:
        raise BuildFailure("Failed to build {} (exit status {})".format(dockerfile, e.returncode))

def remove_image(args: CommandLineArguments, tag: str) -> None:
    if not image_exists(args, tag):
        return
    run([args.runtime, "rmi", "--force", tag], stdout=DEVNULL, check=True)

def create_container(args: CommandLineArguments, image: str, name: str) -> None:
    run_visible([args.runtime, "create", "--name", name, image], stdout=DEVNULL, check=True, timeout=args.timeout)

def remove_container(args: CommandLineArguments, name: str) -> None:
    if not container_exists(args, name):
        return
    run([args.runtime, "rm", "--force", name], stdout=DEVNULL, check=True)

def export_container(args: CommandLineArguments, name: str, dest: str) -> None:
    """Stream the container's root filesystem into dest.

    Equivalent to `docker export NAME | tar -xf - -C DEST`. Both ends
    have to succeed; a short export would otherwise leave a truncated
    tree that tar is perfectly happy with.
    """

    exporter = Popen([args.runtime, "export", name], stdout=PIPE)
    try:
        assert exporter.stdout is not None
        tar = Popen(["tar", "--numeric-owner", "-xf", "-", "-C", dest], stdin=exporter.stdout)
        # Let the exporter see SIGPIPE if tar goes away
        exporter.stdout.close()
        try:
            tar_status = tar.wait(timeout=args.timeout)
        except subprocess.TimeoutExpired as e:
            tar.kill()
            tar.wait()
            raise CommandTimeout("tar timed out after {}s".format(e.timeout)) from e
        export_status = exporter.wait(timeout=args.timeout)
    except subprocess.TimeoutExpired as e:
        raise CommandTimeout("{} export timed out after {}s".format(args.runtime, e.timeout)) from e
    finally:
        if exporter.poll() is None:
            exporter.kill()
            exporter.wait()

    if export_status != 0:
        raise CalledProcessError(export_status, [args.runtime, "export", name])
    if tar_status != 0:
        raise CalledProcessError(tar_status, ["tar", "-xf", "-", "-C", dest])
