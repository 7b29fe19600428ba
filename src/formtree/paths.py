"""Path composition and resolution inside a control tree.

Named children are joined with dots, array children use a bracketed
zero-based index: ``addresses[0].zip``. Resolution never raises; any
segment that cannot be followed yields None.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from formtree.control import Control
    from formtree.group import CompositeControl

PathKey = str | int

_INDEX = re.compile(r"\[(\d+)\]")
_NAME = re.compile(r"[^.\[\]]+")


def is_valid_key(name: str) -> bool:
    """True if ``name`` can be addressed as one path segment."""
    return isinstance(name, str) and _NAME.fullmatch(name) is not None


def join_path(keys: Iterable[str]) -> str:
    """Join parent keys (``name`` or ``[i]``) into a path string."""
    path = ""
    for key in keys:
        if key.startswith("[") or not path:
            path += key
        else:
            path += "." + key
    return path


def path_between(ancestor: CompositeControl, descendant: Control) -> str | None:
    """Path from ``ancestor`` down to ``descendant``, or None if it is not below it."""
    keys: list[str] = []
    node = descendant
    while True:
        parent = node.parent
        if parent is None:
            return None
        keys.append(node.key_from_parent)
        if parent is ancestor:
            break
        node = parent
    return join_path(reversed(keys))


def split_path(path: Any) -> list[PathKey] | None:
    """Split a path into keys; None if the path is malformed.

    Accepts a string (``a.b[0].c``), an int index, or a list of either.
    """
    if isinstance(path, bool):
        return None
    if isinstance(path, int):
        return [path]
    if isinstance(path, (list, tuple)):
        keys: list[PathKey] = []
        for part in path:
            sub = split_path(part)
            if sub is None:
                return None
            keys.extend(sub)
        return keys
    if not isinstance(path, str) or not path:
        return None

    keys = []
    pos = 0
    expect_name = False
    while pos < len(path):
        index = _INDEX.match(path, pos)
        if index and not expect_name:
            keys.append(int(index.group(1)))
            pos = index.end()
        else:
            name = _NAME.match(path, pos)
            if not name or (keys and not expect_name):
                return None
            keys.append(name.group())
            pos = name.end()
            expect_name = False
        if pos < len(path) and path[pos] == ".":
            expect_name = True
            pos += 1
    if expect_name:
        return None
    return keys


def find(root: CompositeControl, path: Any) -> Control | None:
    """Walk ``path`` from ``root``, returning None on the first dead end."""
    keys = split_path(path)
    if not keys:
        return None
    node: Any = root
    for key in keys:
        if node is None or not node.is_composite:
            return None
        node = node.child_at(key)
    return node
