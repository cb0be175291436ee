"""
Traversal state for a single `deep_size_of` call.

A `Context` is created at the start of a top-level call, passed explicitly to
every size function, and dropped when the call returns. It is never stored
on a module or shared between calls: reusing one would make every allocation
it has already seen count as zero.

It holds two things:

- The set of allocations already counted, keyed by object identity.
  Identity and not equality: two equal lists are two allocations, while one
  list reached through two references is one.
- A depth guard. Cycles are broken by the visited set alone; the guard only
  stops descent into pathologically deep structures, so that a size query
  returns an under-estimate instead of raising `RecursionError`.
"""

import sys
from typing import Optional


# Interpreter frames used per level of descent by the dispatcher and the
# builtin size functions, and frames left for the caller.
_FRAMES_PER_LEVEL = 4
_FRAME_RESERVE = 200

def default_max_depth() -> int:
    """
    Deepest descent which fits within the current interpreter recursion
    limit. Computed at call time, so raising the limit with
    `sys.setrecursionlimit` also raises this bound.
    """
    return max((sys.getrecursionlimit() - _FRAME_RESERVE) // _FRAMES_PER_LEVEL, 1)

class Context:
    """
    Mutable state threaded through one traversal.

    Parameters
    ----------
    max_depth: int | None
        Maximum number of nested `deep_size_of_children` calls. Descent
        beyond this depth contributes 0 bytes. ``None`` derives a bound from
        the interpreter recursion limit (see `default_max_depth`).
    strict: bool
        If True, values of types which cannot be introspected raise
        `TypeError` instead of being reported with a warning.
    """
    def __init__(self, max_depth: Optional[int]=None, strict: bool=False):
        if max_depth is None:
            max_depth = default_max_depth()
        self.max_depth = max_depth
        self.strict = strict
        self.depth = 0
        self.truncated = 0     # Number of descents refused by the depth guard
        self._visited = set()
        self._warned = set()

    def __repr__(self):
        return (f"<Context: {len(self._visited)} allocations, "
                f"depth {self.depth}/{self.max_depth}>")

    def __len__(self):
        return len(self._visited)

    def __contains__(self, obj):
        return id(obj) in self._visited

    def try_mark(self, obj) -> bool:
        """
        Record `obj` as counted.
        Returns True the first time an object is seen during this traversal,
        and False on every later attempt. Size functions must not add any
        bytes for `obj` when this returns False.
        """
        key = id(obj)
        if key in self._visited:
            return False
        self._visited.add(key)
        return True

    def enter(self) -> bool:
        """
        Attempt to descend one level. Returns False, without changing the
        depth, if the depth bound is reached; the caller must then count
        nothing further. Every successful `enter` must be paired with `exit`.
        """
        if self.depth >= self.max_depth:
            self.truncated += 1
            return False
        self.depth += 1
        return True

    def exit(self):
        self.depth -= 1

    def warn_once(self, T: type) -> bool:
        """Return True the first time `T` is reported during this traversal."""
        if T in self._warned:
            return False
        self._warned.add(T)
        return True
