# SPDX-License-Identifier: LGPL-2.1+

import pytest

from fcrootfs.types import (
    DEFAULT_LABEL,
    DEFAULT_MARGIN,
    DEFAULT_RUNTIME,
    CommandLineArguments,
)


@pytest.fixture
def args(tmp_path):
    """Arguments as load_args() would produce them for `-i alpine:latest`."""
    a = CommandLineArguments()
    a.verb = "build"
    a.cmdline = []
    a.image = "alpine:latest"
    a.dockerfile = None
    a.context = None
    a.output = str(tmp_path / "alpine-latest.ext4")
    a.margin = DEFAULT_MARGIN
    a.label = DEFAULT_LABEL
    a.force = False
    a.strict = False
    a.with_network = True
    a.runtime = DEFAULT_RUNTIME
    a.timeout = None
    a.extra_search_paths = []
    a.invocation_dir = str(tmp_path)
    return a

@pytest.fixture
def guest_root(tmp_path):
    root = tmp_path / "guest"
    (root / "etc").mkdir(parents=True)
    return root
