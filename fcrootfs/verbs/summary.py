# SPDX-License-Identifier: LGPL-2.1+

import sys
from typing import Optional

from ..types import CommandLineArguments
from ..ui import format_bytes

NEEDS_ROOT = False
NEEDS_SOURCE = True
HAS_ARGS = False

def yes_no(b: bool) -> str:
    return "yes" if b else "no"

def none_to_na(s: Optional[str]) -> str:
    return "n/a" if s is None else s

def format_timeout(t: Optional[float]) -> str:
    return "(none)" if t is None else "{:g}s".format(t)

def do(args: CommandLineArguments) -> None:
    sys.stderr.write("INPUT:\n")
    sys.stderr.write("                 Image: " + none_to_na(args.image) + "\n")
    sys.stderr.write("            Dockerfile: " + none_to_na(args.dockerfile) + "\n")
    if args.dockerfile is not None:
        sys.stderr.write("         Build Context: " + none_to_na(args.context) + "\n")
    sys.stderr.write("\nOUTPUT:\n")
    sys.stderr.write("                Output: " + args.output + "\n")
    sys.stderr.write("      Filesystem Label: " + args.label + "\n")
    sys.stderr.write("           Size Margin: " + format_bytes(args.margin) + "\n")
    sys.stderr.write("                 Force: " + yes_no(args.force) + "\n")
    sys.stderr.write("\nCONFIGURATION:\n")
    sys.stderr.write("          With Network: " + yes_no(args.with_network) + "\n")
    sys.stderr.write("                Strict: " + yes_no(args.strict) + "\n")
    sys.stderr.write("\nHOST:\n")
    sys.stderr.write("               Runtime: " + args.runtime + "\n")
    sys.stderr.write("       Command Timeout: " + format_timeout(args.timeout) + "\n")
    if args.extra_search_paths:
        sys.stderr.write("    Extra Search Paths: " + ":".join(args.extra_search_paths) + "\n")
    sys.stderr.write("\n")
