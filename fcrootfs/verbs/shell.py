# SPDX-License-Identifier: LGPL-2.1+

import os

from ..errors import InputError
from ..types import CommandLineArguments

NEEDS_ROOT = True
NEEDS_SOURCE = False
HAS_ARGS = True

def do(args: CommandLineArguments) -> None:
    if not os.path.exists(args.output):
        raise InputError("No image at " + args.output + ". (Build it first.)")

    cmdline = ["systemd-nspawn",
               "--image=" + args.output,
               "--timezone=off"]

    if args.cmdline:
        cmdline += ('--', *args.cmdline)

    os.execvp(cmdline[0], cmdline)
