"""
    nestedsets.positions
    --------------------

    Where a node goes, relative to a target node.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from nestedsets.exceptions import InvalidPosition
from nestedsets.types import Operation, TreeFields


class Placement(NamedTuple):
    """
    The boundary value that the placed node's ``left`` will take, and how
    much deeper than the target it will be.
    """

    position: int
    depth_delta: int
    target_depth: int | None = None
    target_tree: Any = None

    @property
    def depth(self) -> int:
        """Absolute depth of the placed node."""
        if self.target_depth is None:
            return self.depth_delta
        return self.target_depth + self.depth_delta


def resolve_placement(operation: Operation, target, fields: TreeFields) -> Placement:
    """
    :param operation: one of the :class:`~nestedsets.types.Operation`
        values that place a node, or ``MAKE_ROOT``.
    :param target: the reference node. Ignored for ``MAKE_ROOT``.

    :raise InvalidPosition: for operations that don't place a node.
    """
    if operation is Operation.MAKE_ROOT:
        return Placement(1, 0)

    left = getattr(target, fields.left)
    right = getattr(target, fields.right)
    depth = getattr(target, fields.depth)
    tree = getattr(target, fields.tree) if fields.tree else None

    if operation is Operation.APPEND_TO:
        position, depth_delta = right, 1
    elif operation is Operation.PREPEND_TO:
        position, depth_delta = left + 1, 1
    elif operation is Operation.INSERT_AFTER:
        position, depth_delta = right + 1, 0
    elif operation is Operation.INSERT_BEFORE:
        position, depth_delta = left, 0
    else:
        raise InvalidPosition('Invalid relative position: %s' % (operation, ))
    return Placement(position, depth_delta, depth, tree)
