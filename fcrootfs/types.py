# SPDX-License-Identifier: LGPL-2.1+

import argparse
from enum import Enum
from typing import List, NamedTuple, Optional

DEFAULT_MARGIN = 512*1024*1024  # 512MiB
DEFAULT_LABEL = "rootfs"
DEFAULT_RUNTIME = "docker"

class CommandLineArguments(argparse.Namespace):
    """Type-hinted storage for command line arguments."""

    verb: str
    cmdline: List[str]
    image: Optional[str]
    dockerfile: Optional[str]
    context: Optional[str]
    output: str
    margin: int
    label: str
    force: bool
    strict: bool
    with_network: bool
    runtime: str
    timeout: Optional[float]
    extra_search_paths: List[str]
    invocation_dir: str

class ResolvedImage(NamedTuple):
    tag: str
    # Built for this run only, removed again when the run ends
    ephemeral: bool

class SizePlan(NamedTuple):
    content_bytes: int
    margin_bytes: int
    total_bytes: int

class KeyPair(NamedTuple):
    private_key: str
    public_key: str

class GuestIdentity(NamedTuple):
    """What we learned about the guest OS inside the image.

    `distribution` names a module in fcrootfs.distros, or is None when
    the guest is not one we know how to configure. `source` says which
    detection predicate produced the answer.
    """
    id: str
    distribution: Optional[str]
    source: str

UNKNOWN_GUEST = GuestIdentity(id="unknown", distribution=None, source="none")

class StepStatus(Enum):
    ok = 1
    warning = 2
    skipped = 3

class StepResult(NamedTuple):
    description: str
    status: StepStatus
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.status != StepStatus.ok

class ConfigurationReport(NamedTuple):
    guest: GuestIdentity
    results: List[StepResult]

    @property
    def warnings(self) -> List[StepResult]:
        return [r for r in self.results if r.failed]

    @property
    def total_failure(self) -> bool:
        return bool(self.results) and all(r.failed for r in self.results)
