"""

    nestedsets.engine
    -----------------

    The nested sets engine: validates structural operations, computes the
    renumbering they need, and answers traversal queries.

    Inserts, moves and deletes are driven by the host model's persistence
    cycle. The public operations stage the operation on the node and call
    ``node.save()`` (or ``node.delete()``); the model then calls the
    ``before_*`` hook, writes its own row, and calls the matching ``after_*``
    hook, all inside one ``transaction.atomic`` block. Before-hooks validate
    and return a :class:`~nestedsets.types.NodeBounds` snapshot that the
    after-hook consumes, so no boundary value outlives the operation.

"""

import itertools
import logging

from django.db import router, transaction

from nestedsets.conditions import RangeConditions
from nestedsets.exceptions import (
    CycleDetected,
    InvalidOperation,
    InvalidPosition,
    InvalidTarget,
    MissingIdentity,
    NoOpMove,
    StructureConflict,
    UnsupportedOperation,
)
from nestedsets.positions import resolve_placement
from nestedsets.types import (
    PLACEMENT_OPERATIONS,
    NodeBounds,
    Operation,
    PendingOperation,
)
from nestedsets.updates import TreeUpdater

logger = logging.getLogger(__name__)


def get_result_class(cls, left_field='lft'):
    """
    For the given model class, determine what class we should use for the
    nodes returned by its tree methods (such as get_children).

    Usually this will be trivially the same as the initial model class,
    but there are special cases when model inheritance is in use:

    * If the model extends another via multi-table inheritance, we need to
      use whichever ancestor originally implemented the tree behaviour (i.e.
      the one which defines the left boundary field). We can't use the
      subclass, because it's not guaranteed that the other nodes reachable
      from the current one will be instances of the same subclass.

    * If the model is a proxy model, the returned nodes should also use
      the proxy class.
    """
    base_class = cls._meta.get_field(left_field).model
    if cls._meta.proxy_for_model == base_class:
        return cls
    return base_class


class NestedSetEngine:
    """Tree operations for one nested sets model."""

    def __init__(self, model):
        self.fields = model.get_tree_fields()
        self.model = get_result_class(model, self.fields.left)
        self.conditions = RangeConditions(self.fields)
        self.updater = TreeUpdater(self.model, self.fields)

    @property
    def objects(self):
        return self.model._default_manager

    @property
    def tree_ordering(self):
        if self.fields.multi_tree:
            return [self.fields.tree, self.fields.left]
        return [self.fields.left]

    def atomic(self, node=None):
        return transaction.atomic(
            using=router.db_for_write(self.model, instance=node))

    # node state

    def bounds(self, node):
        return NodeBounds.of(node, self.fields)

    def is_new(self, node):
        return node.pk is None or node._state.adding

    def is_root(self, node):
        return getattr(node, self.fields.left) == 1

    def is_leaf(self, node):
        return self.bounds(node).is_leaf

    def is_descendant(self, node, ancestor):
        """``True`` if ``ancestor``'s interval strictly contains ``node``'s."""
        node_bounds, ancestor_bounds = self.bounds(node), self.bounds(ancestor)
        if self.fields.multi_tree and node_bounds.tree != ancestor_bounds.tree:
            return False
        return (ancestor_bounds.left < node_bounds.left and
                node_bounds.right < ancestor_bounds.right)

    def refresh(self, node):
        """Reloads the interval columns only, keeping unsaved changes."""
        node.refresh_from_db(fields=self.fields.structural)

    def _assign(self, node, bounds):
        setattr(node, self.fields.left, bounds.left)
        setattr(node, self.fields.right, bounds.right)
        setattr(node, self.fields.depth, bounds.depth)
        if self.fields.multi_tree:
            setattr(node, self.fields.tree, bounds.tree)

    def _identity(self, node):
        if node.pk is None:
            raise MissingIdentity(
                '"%s" must have a primary key.' % self.model._meta.label)
        return node.pk

    # public operations

    def _stage(self, node, operation, target=None):
        node._tree_operation = PendingOperation(operation, target)
        node.save()
        return node

    def insert(self, node, operation, target=None):
        if not self.is_new(node):
            raise InvalidOperation(
                'Can not insert a node that is already saved, move it '
                'instead.')
        return self._stage(node, operation, target)

    def insert_as_root(self, node):
        return self.insert(node, Operation.MAKE_ROOT)

    def insert_as_child(self, node, target, at_front=False):
        operation = Operation.PREPEND_TO if at_front else Operation.APPEND_TO
        return self.insert(node, operation, target)

    def insert_as_sibling(self, node, target, before=False):
        if before:
            operation = Operation.INSERT_BEFORE
        else:
            operation = Operation.INSERT_AFTER
        return self.insert(node, operation, target)

    def move_node(self, node, target, operation):
        """
        Moves ``node`` and all its descendants relative to ``target``. With
        ``Operation.MAKE_ROOT`` (and no target) the subtree becomes a new
        tree.
        """
        if self.is_new(node):
            raise InvalidTarget('Can not move a node when it is new record.')
        return self._stage(node, operation, target)

    def delete_single(self, node):
        """Deletes ``node``; its descendants move one level up."""
        return node.delete()

    def delete_with_subtree(self, node):
        """:returns: the number of deleted nodes."""
        with self.atomic(node):
            bounds = self.before_delete(node, Operation.DELETE_WITH_CHILDREN)
            deleted = self.updater.delete_range(
                bounds.left, bounds.right, bounds.tree)
            node.pk = None
            self.after_delete(node, bounds, Operation.DELETE_WITH_CHILDREN)
        return deleted

    # lifecycle hooks

    def before_insert(self, node, pending):
        if pending is None:
            raise UnsupportedOperation(
                'Method "%s.save" is not supported for inserting new nodes, '
                'use make_root, append_to, prepend_to, insert_before or '
                'insert_after.' % self.model.__name__)
        operation, target = pending

        if operation is Operation.MAKE_ROOT:
            if not self.fields.multi_tree and self.roots().exists():
                raise StructureConflict(
                    'Can not create more than one root when "tree_field" '
                    'is not set.')
            self._assign(node, NodeBounds(1, 2, 0))
            return self.bounds(node)

        if operation not in PLACEMENT_OPERATIONS:
            raise InvalidPosition(
                'Invalid relative position: %s' % (operation, ))
        if target is None or self.is_new(target):
            raise InvalidTarget(
                'Can not create a node when the target node is new record.')
        self.refresh(target)
        placement = resolve_placement(operation, target, self.fields)
        if placement.depth_delta == 0 and self.is_root(target):
            raise InvalidOperation(
                'Can not create a node when the target node is root.')

        logger.debug('insert %s %r at %d', operation.value, target,
                     placement.position)
        self.updater.shift_boundaries(
            placement.position, 2, placement.target_tree)
        self._assign(node, NodeBounds(
            placement.position, placement.position + 1, placement.depth,
            placement.target_tree))
        return self.bounds(node)

    def after_insert(self, node, pending):
        operation, target = pending
        if operation is Operation.MAKE_ROOT and self.fields.multi_tree:
            tree_value = self._identity(node)
            setattr(node, self.fields.tree, tree_value)
            self.updater.assign_tree(node.pk, tree_value)
        if target is not None:
            self.refresh(target)

    def before_update(self, node, pending):
        if pending is None:
            return None
        operation, target = pending

        if operation is Operation.MAKE_ROOT:
            if not self.fields.multi_tree:
                raise UnsupportedOperation(
                    'Can not move a node as the root when "tree_field" is '
                    'not set.')
            self._identity(node)
            self.refresh(node)
            if self.is_root(node):
                raise NoOpMove('Can not move the root node as the root.')
            return self.bounds(node)

        if operation not in PLACEMENT_OPERATIONS:
            raise InvalidPosition(
                'Invalid relative position: %s' % (operation, ))
        if target is None or self.is_new(target):
            raise InvalidTarget(
                'Can not move a node when the target node is new record.')
        self.refresh(target)
        self.refresh(node)
        if operation in (Operation.INSERT_BEFORE, Operation.INSERT_AFTER) \
                and self.is_root(target):
            raise InvalidOperation(
                'Can not move a node when the target node is root.')
        if node == target:
            raise NoOpMove(
                'Can not move a node when the target node is same.')
        if self.is_descendant(target, node):
            raise CycleDetected(
                'Can not move a node when the target node is child.')
        return self.bounds(node)

    def after_update(self, node, pending, bounds):
        if pending is None:
            return
        operation, target = pending

        if operation is Operation.MAKE_ROOT:
            logger.debug('move %r as root', node)
            self.updater.promote_to_root(
                bounds.left, bounds.right, bounds.depth, node.pk,
                bounds.tree)
            self.updater.shift_boundaries(
                bounds.right + 1, -bounds.width, bounds.tree)
        else:
            placement = resolve_placement(operation, target, self.fields)
            logger.debug('move %r %s %r', node, operation.value, target)
            self._move(bounds, placement)

        self.refresh(node)
        if target is not None:
            self.refresh(target)

    def _move(self, bounds, placement):
        position = placement.position
        depth_offset = placement.depth - bounds.depth
        width = bounds.width

        if not self.fields.multi_tree or bounds.tree == placement.target_tree:
            # open the destination gap, relocate, then close the origin gap
            self.updater.shift_boundaries(position, width, bounds.tree)
            left, right = bounds.left, bounds.right
            if left >= position:
                left += width
                right += width
            self.updater.move_within_tree(
                left, right, position - left, depth_offset, bounds.tree)
            self.updater.shift_boundaries(right + 1, -width, bounds.tree)
        else:
            self.updater.shift_boundaries(
                position, width, placement.target_tree)
            self.updater.move_across_trees(
                bounds.left, bounds.right, position - bounds.left,
                depth_offset, placement.target_tree, bounds.tree)
            self.updater.shift_boundaries(
                bounds.right + 1, -width, bounds.tree)

    def before_delete(self, node, operation=Operation.DELETE):
        if self.is_new(node):
            raise InvalidTarget('Can not delete a node when it is new record.')
        self.refresh(node)
        if self.is_root(node) and \
                operation is not Operation.DELETE_WITH_CHILDREN:
            raise UnsupportedOperation(
                'Method "%s.delete" is not supported for deleting root '
                'nodes.' % self.model.__name__)
        return self.bounds(node)

    def after_delete(self, node, bounds, operation=Operation.DELETE):
        if operation is Operation.DELETE_WITH_CHILDREN or bounds.is_leaf:
            self.updater.shift_boundaries(
                bounds.right + 1, -bounds.width, bounds.tree)
        else:
            # only one node is gone, so its descendants go up exactly one
            # level
            self.updater.lift_descendants(
                bounds.left, bounds.right, bounds.tree)
            self.updater.shift_boundaries(bounds.right + 1, -2, bounds.tree)

    # traversal

    def _read(self, condition, ordering=None):
        return self.objects.filter(condition).order_by(
            *(ordering or [self.fields.left]))

    def ancestors(self, node, depth=None):
        """
        :returns: the ancestors of ``node`` from the root down to the
            parent. With ``depth``, only the nearest ``depth`` levels.
        """
        return self._read(self.conditions.ancestors(self.bounds(node), depth))

    def descendants(self, node, depth=None):
        return self._read(
            self.conditions.descendants(self.bounds(node), depth))

    def children(self, node):
        return self.descendants(node, 1)

    def next_sibling(self, node):
        return self._read(self.conditions.next_sibling(self.bounds(node)))

    def previous_sibling(self, node):
        return self._read(
            self.conditions.previous_sibling(self.bounds(node)))

    def leaves(self, node=None):
        if node is None:
            return self._read(self.conditions.leaf(), self.tree_ordering)
        return self._read(self.conditions.leaves_of(self.bounds(node)))

    def roots(self):
        return self._read(self.conditions.root(), self.tree_ordering + ['pk'])

    def root_of(self, node):
        bounds = self.bounds(node)
        return self.objects.get(
            self.conditions.tree_scoped(self.conditions.root(), bounds.tree))

    def get_tree(self, parent=None):
        """
        :returns: A queryset of nodes ordered as DFS, including the parent.
            If no parent is given, all trees are returned.
        """
        if parent is None:
            return self.objects.order_by(*self.tree_ordering)
        bounds = self.bounds(parent)
        return self._read(
            self.conditions.subtree(bounds.left, bounds.right, bounds.tree))

    def find_problems(self):
        """
        Checks the invariants of every tree in the table.

        :returns: A tuple of four lists:

                  1. primary keys of nodes with ``right <= left`` or an even
                     interval width
                  2. primary keys of nodes whose depth doesn't match their
                     number of ancestors
                  3. tree values (``None`` for a single tree) of trees that
                     don't have exactly one root
                  4. tree values of trees whose boundaries aren't the
                     sequence ``1..2n``
        """
        fields = self.fields
        columns = ['pk', fields.left, fields.right, fields.depth]
        if fields.multi_tree:
            columns.append(fields.tree)
        rows = self.objects.order_by(*self.tree_ordering).values_list(*columns)

        bad_bounds, wrong_depth, wrong_roots, gaps = [], [], [], []
        for tree_value, group in itertools.groupby(
                rows, key=lambda row: row[4] if fields.multi_tree else None):
            open_rights, edges, roots = [], [], 0
            for pk, left, right, depth, *_ in group:
                edges.extend([left, right])
                if left == 1:
                    roots += 1
                if right <= left or (right - left) % 2 == 0:
                    bad_bounds.append(pk)
                    continue
                while open_rights and open_rights[-1] < left:
                    open_rights.pop()
                if depth != len(open_rights):
                    wrong_depth.append(pk)
                open_rights.append(right)
            if roots != 1:
                wrong_roots.append(tree_value)
            if sorted(edges) != list(range(1, len(edges) + 1)):
                gaps.append(tree_value)
        return bad_bounds, wrong_depth, wrong_roots, gaps
