"""Nested sets exceptions"""


class NestedSetsError(Exception):
    """Base class of every error raised by a tree operation."""


class InvalidTarget(NestedSetsError):
    """
    Raised when the node used as a reference (or the node being deleted)
    hasn't been saved to the database yet.
    """


class NoOpMove(NestedSetsError):
    """Raised when a node is moved relative to itself, or a root to root."""


class CycleDetected(NestedSetsError):
    """Raised when attempting to move a node to one of its descendants."""


class StructureConflict(NestedSetsError):
    """
    Raised when creating a second root node in a model without
    :attr:`~nestedsets.models.NestedSetNode.tree_field`.
    """


class UnsupportedOperation(NestedSetsError):
    """
    Raised when the operation isn't allowed in the current mode: making a
    root without multiple tree support, deleting a root node without its
    children, or saving a new node without a position.
    """


class InvalidOperation(NestedSetsError):
    """Raised when inserting or moving a node next to a root node."""


class InvalidPosition(NestedSetsError):
    """Raised when passing an invalid operation value"""


class MissingIdentity(NestedSetsError):
    """
    Raised when a root node needs its primary key as tree value but the
    node hasn't been assigned one.
    """
