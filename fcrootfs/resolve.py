# SPDX-License-Identifier: LGPL-2.1+

from . import docker
from .cleanup import ResourceRegistry
from .types import CommandLineArguments, ResolvedImage
from .ui import complete_step, print_step
from .utils import unique_name

TEMP_REPOSITORY = "fc-rootfs-temp"

def ephemeral_tag() -> str:
    # Tags may not contain a second colon, so the unique part goes after it
    return TEMP_REPOSITORY + ":" + unique_name("build")

def resolve_image(args: CommandLineArguments, registry: ResourceRegistry) -> ResolvedImage:
    """Turn the requested source into one image that can be exported.

    A Dockerfile is built into a throw-away tag which is owned by this
    run; an image reference is pulled if it isn't available locally.
    """

    if args.dockerfile is not None:
        tag = ephemeral_tag()
        registry.push("Removing temporary image " + tag, docker.remove_image, args, tag)
        with complete_step("Building image from " + args.dockerfile,
                           "Built image {}") as output:
            assert args.context is not None
            docker.build_image(args, args.dockerfile, args.context, tag)
            output.append(tag)
        return ResolvedImage(tag=tag, ephemeral=True)

    assert args.image is not None
    if docker.image_exists(args, args.image):
        print_step("Using local image " + args.image + ".")
    else:
        with complete_step("Image not found locally, pulling " + args.image):
            docker.pull_image(args, args.image)
    return ResolvedImage(tag=args.image, ephemeral=False)
