# SPDX-License-Identifier: LGPL-2.1+

from types import TracebackType
from typing import Any, Callable, List, NamedTuple, Optional, Type

from .ui import complete_step, warn


class Release(NamedTuple):
    description: str
    action: Callable[..., Any]
    args: tuple

class ResourceRegistry:
    """Ordered collection of release actions for one build.

    Every phase pushes the release of a resource *before* doing the thing
    that acquires it, so a failure halfway through acquisition still gets
    cleaned up. On exit the actions run in reverse order of registration,
    each one best-effort: a failing release is reported and the next one
    still runs. The registry drains exactly once.
    """

    def __init__(self) -> None:
        self._stack: List[Optional[Release]] = []
        self._closed = False

    def push(self, description: str, action: Callable[..., Any], *args: Any) -> int:
        if self._closed:
            raise RuntimeError("Resource registry already released")
        self._stack.append(Release(description, action, args))
        return len(self._stack) - 1

    def release(self, token: int) -> None:
        """Release one resource early, propagating any failure.

        The entry is dropped from the registry first, so it will not be
        attempted again at close().
        """
        entry = self._stack[token]
        if entry is None:
            return
        self._stack[token] = None
        entry.action(*entry.args)

    def close(self) -> List[str]:
        """Run all outstanding release actions, newest first.

        Returns the descriptions of the releases that failed.
        """
        if self._closed:
            return []
        self._closed = True

        failed: List[str] = []
        while self._stack:
            entry = self._stack.pop()
            if entry is None:
                continue
            try:
                with complete_step(entry.description):
                    entry.action(*entry.args)
            except Exception as e:
                warn("{} failed: {}", entry.description, e)
                failed.append(entry.description)
        return failed

    def __len__(self) -> int:
        return sum(1 for e in self._stack if e is not None)

    def __enter__(self) -> 'ResourceRegistry':
        return self

    def __exit__(self,
                 exc_type: Optional[Type[BaseException]],
                 exc: Optional[BaseException],
                 tb: Optional[TracebackType]) -> None:
        self.close()
