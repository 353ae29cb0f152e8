# PYTHON_ARGCOMPLETE_OK
# SPDX-License-Identifier: LGPL-2.1+

import argparse
import configparser
import os
import string
import sys
from typing import Any, Dict, List, Optional, Sequence, Union, cast

from . import __version__, verbs
from .errors import InputError
from .types import (
    DEFAULT_LABEL,
    DEFAULT_MARGIN,
    DEFAULT_RUNTIME,
    CommandLineArguments,
)
from .ui import warn

try:
    import argcomplete  # type: ignore # type hints for argcomplete don't exist yet
except ImportError:
    pass

DEFAULTS_FILE = "fc-rootfs.default"

class ListAction(argparse.Action):
    delimiter: str

    def __call__(self,  # These typehints are copied from argparse.pyi
                 parser: argparse.ArgumentParser,
                 namespace: argparse.Namespace,
                 values: Union[str, Sequence[Any], None],
                 option_string: Optional[str]=None) -> None:
        assert isinstance(values, str)
        ary = getattr(namespace, self.dest)
        if ary is None:
            ary = []
        ary.extend(values.split(self.delimiter))
        setattr(namespace, self.dest, ary)

class ColonDelimitedListAction(ListAction):
    delimiter = ":"

def has_args_list() -> str:
    ary = [verb for verb in verbs.list_verbs() if verbs.get_verb(verb).HAS_ARGS]
    ary.sort()
    return ', '.join(["'{}'".format(verb) for verb in ary])

def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='fc-rootfs',
                                     description='Build a Firecracker rootfs image from a container image or Dockerfile',
                                     add_help=False)

    group = parser.add_argument_group("Commands")
    group.add_argument("verb", choices=verbs.list_verbs()+['help'], nargs='?', default="build", help='Operation to execute')
    group.add_argument("cmdline", nargs=argparse.REMAINDER, help="The command line to use for {}".format(has_args_list()))
    group.add_argument('-h', '--help', action='help', help="Show this help")
    group.add_argument('--version', action='version', version='%(prog)s ' + __version__)

    group = parser.add_argument_group("Input (choose one)")
    group.add_argument('-i', "--image", help='Container image tag (e.g. ubuntu:22.04, alpine:latest)', metavar='IMAGE_TAG')
    group.add_argument('-f', "--dockerfile", help='Dockerfile to build and extract', metavar='PATH')
    group.add_argument("--context", help="Build context for --dockerfile (default: the Dockerfile's directory)", metavar='DIR')

    group = parser.add_argument_group("Output")
    group.add_argument('-o', "--output", help='Output image path (default: <image_name>.ext4)', metavar='PATH')
    group.add_argument('-s', "--size", dest='margin', help='Extra space to add to the filesystem, in MiB unless suffixed with K, M or G (default: 512)', metavar='SIZE')
    group.add_argument("--label", help='Filesystem label (default: {})'.format(DEFAULT_LABEL))
    group.add_argument("--force", action='store_true', default=None, help='Replace an existing output file')

    group = parser.add_argument_group("Configuration")
    group.add_argument("--strict", action='store_true', default=None, help='Fail the build if any in-image configuration step fails')
    group.add_argument("--without-network", action='store_false', dest='with_network', default=None,
                       help='Run in-image configuration with a private network')

    group = parser.add_argument_group("Host configuration")
    group.add_argument("--runtime", help='Container runtime command (default: {})'.format(DEFAULT_RUNTIME), metavar='CMD')
    group.add_argument("--timeout", help='Give up on any single long-running command after this many seconds', metavar='SECONDS')
    group.add_argument("--extra-search-paths", action=ColonDelimitedListAction, help="List of colon-separated paths to look for programs before looking in PATH")

    group = parser.add_argument_group("Additional Configuration")
    group.add_argument('-C', "--directory", help='Change to specified directory before doing anything', metavar='PATH')
    group.add_argument("--default", dest='default_path', help='Read configuration data from file', metavar='PATH')

    return parser

def parse_args(argv: Optional[Sequence[str]]=None) -> CommandLineArguments:
    parser = make_parser()

    try:
        argcomplete.autocomplete(parser)
    except NameError:
        pass

    args = cast(CommandLineArguments, parser.parse_args(argv, namespace=CommandLineArguments()))

    if args.verb == "help":
        parser.print_help()
        sys.exit(0)

    return args

def parse_size(size: str) -> int:
    "Parse a size with an optional K/M/G suffix. A bare number means MiB."

    size = size.strip().upper()
    if size.endswith('G'):
        factor = 1024**3
    elif size.endswith('M'):
        factor = 1024**2
    elif size.endswith('K'):
        factor = 1024
    else:
        factor = 1024**2
        size += 'M'

    result = int(size[:-1]) * factor
    if result < 0:
        raise ValueError("Size out of range")

    return result

def parse_boolean(s: str) -> bool:
    "Parse 1/true/yes as true and 0/false/no as false"
    s = s.lower()
    if s in {"1", "true", "yes"}:
        return True

    if s in {"0", "false", "no"}:
        return False

    raise ValueError("Invalid literal for bool(): {!r}".format(s))

def process_setting(args: CommandLineArguments, section: str, key: Optional[str], value: Any) -> bool:
    if section == "Input":
        if key == "Image":
            if args.image is None:
                args.image = value
        elif key == "Dockerfile":
            if args.dockerfile is None:
                args.dockerfile = value
        elif key == "Context":
            if args.context is None:
                args.context = value
        elif key is None:
            return True
        else:
            return False
    elif section == "Output":
        if key == "Output":
            if args.output is None:
                args.output = value
        elif key == "Size":
            if args.margin is None:
                args.margin = value
        elif key == "Label":
            if args.label is None:
                args.label = value
        elif key == "Force":
            if args.force is None:
                args.force = parse_boolean(value)
        elif key is None:
            return True
        else:
            return False
    elif section == "Configuration":
        if key == "Strict":
            if args.strict is None:
                args.strict = parse_boolean(value)
        elif key == "Network":
            if args.with_network is None:
                args.with_network = parse_boolean(value)
        elif key is None:
            return True
        else:
            return False
    elif section == "Host":
        if key == "Runtime":
            if args.runtime is None:
                args.runtime = value
        elif key == "Timeout":
            if args.timeout is None:
                args.timeout = value
        elif key == "ExtraSearchPaths":
            list_value = value if type(value) == list else value.split()
            if args.extra_search_paths is None:
                args.extra_search_paths = []
            for v in list_value:
                args.extra_search_paths.extend(v.split(":"))
        elif key is None:
            return True
        else:
            return False
    else:
        return False

    return True

def load_defaults_file(fname: str, options: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Dict[str, Any]]]:
    try:
        f = open(fname)
    except FileNotFoundError:
        return None

    config = configparser.ConfigParser(delimiters='=')
    config.optionxform = str  # type: ignore # keys are case sensitive
    with f:
        config.read_file(f)

    # this is used only for validation
    args = parse_args([])

    for section in config.sections():
        if not process_setting(args, section, None, None):
            sys.stderr.write("Unknown section in {}, ignoring: [{}]\n".format(fname, section))
            continue
        if section not in options:
            options[section] = {}
        for key in config[section]:
            if not process_setting(args, section, key, config[section][key]):
                sys.stderr.write("Unknown key in section [{}] in {}, ignoring: {}=\n".format(section, fname, key))
                continue
            options[section][key] = config[section][key]
    return options

def load_defaults(args: CommandLineArguments) -> None:
    fname = DEFAULTS_FILE if args.default_path is None else args.default_path

    config: Dict[str, Dict[str, str]] = {}
    load_defaults_file(fname, config)

    defaults_dir = fname + '.d'
    if os.path.isdir(defaults_dir):
        for defaults_file in sorted(os.listdir(defaults_dir)):
            defaults_path = os.path.join(defaults_dir, defaults_file)
            if os.path.isfile(defaults_path):
                load_defaults_file(defaults_path, config)

    for section in config.keys():
        for key in config[section]:
            process_setting(args, section, key, config[section][key])

def default_output(args: CommandLineArguments) -> str:
    if args.image is not None:
        # registry.example.com:5000/library/ubuntu:22.04@sha256:... -> ubuntu-22.04
        name = args.image.split('@', 1)[0].rsplit('/', 1)[-1]
        return name.replace(':', '-') + ".ext4"

    assert args.context is not None
    return (os.path.basename(os.path.abspath(args.context)) or "rootfs") + ".ext4"

def check_source(args: CommandLineArguments) -> None:
    if args.image is None and args.dockerfile is None:
        raise InputError("Either image tag (-i) or dockerfile (-f) is required")

    if args.image is not None and args.dockerfile is not None:
        raise InputError("Cannot specify both image and dockerfile")

    if args.dockerfile is not None:
        args.dockerfile = os.path.abspath(args.dockerfile)
        if not os.path.isfile(args.dockerfile):
            raise InputError("Dockerfile not found: " + args.dockerfile)

        if args.context is None:
            args.context = os.path.dirname(args.dockerfile)
        args.context = os.path.abspath(args.context)
        if not os.path.isdir(args.context):
            raise InputError("Build context not found: " + args.context)
    elif args.context is not None:
        warn('Ignoring build context as no dockerfile is used.')
        args.context = None

def load_args(argv: Optional[Sequence[str]]=None) -> CommandLineArguments:
    args = parse_args(argv)

    if args.directory is not None:
        os.chdir(args.directory)
    args.invocation_dir = os.getcwd()

    try:
        load_defaults(args)
    except (ValueError, configparser.Error) as e:
        raise InputError("Invalid defaults file: {}".format(e))

    args.extra_search_paths = expand_paths(args.extra_search_paths or [])

    verb = verbs.get_verb(args.verb)
    if args.cmdline and not verb.HAS_ARGS:
        raise InputError("Additional parameters only accepted for {}.".format(has_args_list()))

    if verb.NEEDS_SOURCE:
        check_source(args)

    if args.output is None:
        if args.image is None and args.dockerfile is None:
            raise InputError("An output image (-o) is required")
        args.output = default_output(args)
    args.output = os.path.abspath(args.output)

    try:
        args.margin = DEFAULT_MARGIN if args.margin is None else parse_size(str(args.margin))
    except ValueError:
        raise InputError("Invalid size: {}".format(args.margin))

    try:
        args.timeout = None if args.timeout is None else float(args.timeout)
    except ValueError:
        raise InputError("Invalid timeout: {}".format(args.timeout))
    if args.timeout is not None and args.timeout <= 0:
        raise InputError("Timeout must be positive")

    if args.label is None:
        args.label = DEFAULT_LABEL
    if len(args.label.encode("utf-8")) > 16:
        raise InputError("Filesystem label may be at most 16 bytes: " + args.label)
    if args.runtime is None:
        args.runtime = DEFAULT_RUNTIME

    args.force = bool(args.force)
    args.strict = bool(args.strict)
    args.with_network = True if args.with_network is None else args.with_network

    return args

def expand_paths(paths: List[str]) -> List[str]:
    if not paths:
        return []

    environ = os.environ.copy()
    # Add a fake SUDO_HOME variable to allow non-root users specify
    # paths in their home when using fc-rootfs via sudo.
    sudo_user = os.getenv("SUDO_USER")
    if sudo_user and "SUDO_HOME" not in environ:
        environ["SUDO_HOME"] = os.path.expanduser("~{}".format(sudo_user))

    # No os.path.expandvars because it treats unset variables as empty.
    expanded = []
    for path in paths:
        try:
            path = string.Template(path).substitute(environ)
            expanded.append(path)
        except KeyError:
            # Skip path if it uses a variable not defined.
            pass
    return expanded
