from __future__ import annotations

import enum
from typing import Any, NamedTuple, NotRequired, TypedDict


class Operation(enum.Enum):
    """Every structural operation a node can be staged for."""

    MAKE_ROOT = 'make-root'
    PREPEND_TO = 'prepend-to'
    APPEND_TO = 'append-to'
    INSERT_BEFORE = 'insert-before'
    INSERT_AFTER = 'insert-after'
    DELETE = 'delete'
    DELETE_WITH_CHILDREN = 'delete-with-children'


#: operations that place a node relative to a target node
PLACEMENT_OPERATIONS = (
    Operation.PREPEND_TO,
    Operation.APPEND_TO,
    Operation.INSERT_BEFORE,
    Operation.INSERT_AFTER,
)


class TreeFields(NamedTuple):
    """Column names holding the interval markers of a node model."""

    left: str = 'lft'
    right: str = 'rgt'
    depth: str = 'depth'
    tree: str | None = None

    @property
    def multi_tree(self) -> bool:
        return self.tree is not None

    @property
    def structural(self) -> list[str]:
        names = [self.left, self.right, self.depth]
        if self.tree is not None:
            names.append(self.tree)
        return names


class NodeBounds(NamedTuple):
    """Snapshot of a node's interval, taken once per operation."""

    left: int
    right: int
    depth: int
    tree: Any = None

    @classmethod
    def of(cls, node, fields: TreeFields) -> NodeBounds:
        return cls(
            getattr(node, fields.left),
            getattr(node, fields.right),
            getattr(node, fields.depth),
            getattr(node, fields.tree) if fields.tree else None,
        )

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def is_leaf(self) -> bool:
        return self.right - self.left == 1


class PendingOperation(NamedTuple):
    operation: Operation
    target: Any = None


class BulkNodeData(TypedDict):
    """
    One node of the nested structure read by ``load_bulk`` and produced by
    ``dump_bulk``. With ``keep_ids`` the primary key is stored next to
    ``data``, under the name of the pk attribute.
    """

    data: dict[str, Any]
    children: NotRequired[list[BulkNodeData]]
