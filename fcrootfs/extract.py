# SPDX-License-Identifier: LGPL-2.1+

import os
import shutil
import tempfile

from . import docker
from .cleanup import ResourceRegistry
from .types import CommandLineArguments, ResolvedImage
from .ui import complete_step, print_step
from .utils import mkdir_last, unique_name


def remove_workspace(path: str) -> None:
    # Never recurse into an image that is still mounted below the workspace
    with os.scandir(path) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False) and os.path.ismount(entry.path):
                raise OSError("{} is still mounted, leaving {} in place".format(entry.path, path))
    shutil.rmtree(path)

def setup_workspace(registry: ResourceRegistry) -> str:
    d = tempfile.mkdtemp(dir=os.environ.get("TMPDIR", "/var/tmp"), prefix="fc-rootfs-")
    registry.push("Removing temporary workspace " + d, remove_workspace, d)
    print_step("Temporary workspace in " + d + " is now set up.")
    return d

def extract_tree(args: CommandLineArguments, registry: ResourceRegistry, image: ResolvedImage, workspace: str) -> str:
    """Unpack the image's file tree into <workspace>/root.

    The container is created (never started) under a name we pick
    ourselves, so its removal can be registered before it exists.
    """

    root = mkdir_last(os.path.join(workspace, "root"), 0o755)
    name = unique_name("fc-rootfs")
    registry.push("Removing container " + name, docker.remove_container, args, name)

    with complete_step("Creating container from " + image.tag):
        docker.create_container(args, image.tag, name)

    with complete_step("Exporting container filesystem"):
        docker.export_container(args, name, root)

    return root
