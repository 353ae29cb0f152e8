# SPDX-License-Identifier: LGPL-2.1+

import os
from typing import NoReturn, Set, Tuple

from .types import SizePlan
from .ui import complete_step, format_bytes, print_step


def _raise(e: OSError) -> NoReturn:
    raise e

def tree_size(path: str) -> int:
    """Apparent size of everything below path, like `du -sb`.

    Directories and symlinks count with their own size; symlinks are
    never followed. Hard links are counted once. Any error reading the
    tree is fatal since it means the extraction is broken.
    """

    seen: Set[Tuple[int, int]] = set()

    def account(p: str) -> int:
        st = os.lstat(p)
        if st.st_nlink > 1:
            key = (st.st_dev, st.st_ino)
            if key in seen:
                return 0
            seen.add(key)
        return st.st_size

    total = account(path)
    for dirpath, dirnames, filenames in os.walk(path, onerror=_raise):
        for name in dirnames + filenames:
            total += account(os.path.join(dirpath, name))
    return total

def plan_size(root: str, margin: int) -> SizePlan:
    if margin < 0:
        raise ValueError("Margin must not be negative")

    with complete_step("Calculating filesystem size"):
        content = tree_size(root)
        plan = SizePlan(content_bytes=content,
                        margin_bytes=margin,
                        total_bytes=content + margin)

    print_step("Filesystem content size: " + format_bytes(plan.content_bytes) + ".")
    print_step("Total image size: " + format_bytes(plan.total_bytes) + ".")

    return plan
