# SPDX-License-Identifier: LGPL-2.1+

import os
import sys
from typing import NamedTuple

from . import summary
from .. import docker
from ..capacity import plan_size
from ..cleanup import ResourceRegistry
from ..configure import configure_image
from ..extract import extract_tree, setup_workspace
from ..image import check_output, package_image, print_output_size
from ..resolve import resolve_image
from ..ssh import provision_credentials
from ..types import (
    CommandLineArguments,
    ConfigurationReport,
    KeyPair,
    ResolvedImage,
    SizePlan,
)
from ..utils import check_tools

NEEDS_ROOT = True
NEEDS_SOURCE = True
HAS_ARGS = False

REQUIRED_TOOLS = ["mkfs.ext4", "ssh-keygen", "tar", "mount", "umount", "systemd-nspawn"]

class BuildResult(NamedTuple):
    image: ResolvedImage
    plan: SizePlan
    key: KeyPair
    report: ConfigurationReport

def check_environment(args: CommandLineArguments) -> None:
    check_tools([args.runtime, *REQUIRED_TOOLS])
    docker.check_runtime(args)

def build_stuff(args: CommandLineArguments) -> BuildResult:
    # Phases run strictly in order, each on the previous one's output.
    # Whatever happens, the registry releases everything on the way out.
    with ResourceRegistry() as registry:
        image = resolve_image(args, registry)
        workspace = setup_workspace(registry)
        root = extract_tree(args, registry, image, workspace)
        plan = plan_size(root, args.margin)
        key = provision_credentials(args, workspace, root)
        package_image(args, root, plan)
        report = configure_image(args, registry, workspace)

    return BuildResult(image=image, plan=plan, key=key, report=report)

def print_usage(args: CommandLineArguments, result: BuildResult) -> None:
    key = os.path.relpath(result.key.private_key, args.invocation_dir)
    output = os.path.relpath(args.output, args.invocation_dir)

    sys.stderr.write("\n")
    sys.stderr.write("✓ Rootfs image created: " + output + "\n")
    sys.stderr.write("✓ SSH private key: " + key + "\n")
    if result.report.warnings:
        sys.stderr.write("! {} configuration warning(s), see above\n".format(len(result.report.warnings)))
    sys.stderr.write("\n")
    sys.stderr.write("Usage with Firecracker:\n")
    sys.stderr.write("  firecracker --kernel-image-path vmlinux \\\n")
    sys.stderr.write("              --rootfs-path " + output + " \\\n")
    sys.stderr.write("              --config-file config.json\n")
    sys.stderr.write("\n")
    sys.stderr.write("SSH access (once running):\n")
    sys.stderr.write("  ssh -i " + key + " root@<guest-ip>\n")

def do(args: CommandLineArguments) -> None:
    check_environment(args)
    check_output(args)
    summary.do(args)
    result = build_stuff(args)
    print_output_size(args)
    print_usage(args, result)
