# SPDX-License-Identifier: LGPL-2.1+

import sys
from subprocess import CalledProcessError

from . import verbs
from .cli import load_args
from .errors import BuildError
from .ui import die
from .utils import check_root, prepend_to_environ_path

if sys.version_info < (3, 6):
    sys.exit("Sorry, we need at least Python 3.6.")

def run() -> None:
    args = load_args()
    verb = verbs.get_verb(args.verb)

    if verb.NEEDS_ROOT:
        check_root()

    prepend_to_environ_path(args.extra_search_paths)

    verb.do(args)

def main() -> None:
    try:
        run()
    except BuildError as e:
        die("Error: " + str(e), e.status)
    except CalledProcessError as e:
        die("Error: {} failed with exit status {}".format(e.cmd[0], e.returncode))
    except OSError as e:
        die("Error: " + str(e))
