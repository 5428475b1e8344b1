"""
    nestedsets.updates
    ------------------

    Bulk renumbering primitives. Every method issues one (or two) set based
    ``UPDATE``/``DELETE`` statements; none of them iterates over rows.

    The primitives don't open transactions themselves: the engine runs all
    the statements of one operation inside a single ``transaction.atomic``
    block.
"""

import logging

from django.db.models import F

from nestedsets.conditions import RangeConditions

logger = logging.getLogger(__name__)


class TreeUpdater:
    """Set based updates on the table of a nested sets model."""

    def __init__(self, model, fields):
        self.model = model
        self.fields = fields
        self.conditions = RangeConditions(fields)

    def _queryset(self, condition):
        # the base manager returns a plain queryset, so deleting through it
        # doesn't recurse into NestedSetQuerySet.delete()
        return self.model._base_manager.filter(condition)

    def _offset(self, attribute, offset):
        return F(attribute) + offset

    def _movement(self, position_offset, depth_offset):
        fields = self.fields
        return {
            fields.left: self._offset(fields.left, position_offset),
            fields.right: self._offset(fields.right, position_offset),
            fields.depth: self._offset(fields.depth, depth_offset),
        }

    def shift_boundaries(self, from_value, delta, tree_value=None):
        """
        Adds ``delta`` to every left and right value greater than or equal
        to ``from_value``. Opens a gap with a positive delta, closes one with
        a negative delta.
        """
        affected = 0
        for attribute in (self.fields.left, self.fields.right):
            affected += self._queryset(
                self.conditions.boundary_from(attribute, from_value,
                                              tree_value)
            ).update(**{attribute: self._offset(attribute, delta)})
        logger.debug('shift %+d from %d (tree %s): %d values',
                     delta, from_value, tree_value, affected)
        return affected

    def move_within_tree(self, left, right, position_offset, depth_offset,
                         tree_value=None):
        """
        Relocates the ``[left, right]`` block. The destination gap must
        already be open, and the origin gap is closed afterwards by the
        caller.
        """
        affected = self._queryset(
            self.conditions.subtree(left, right, tree_value)
        ).update(**self._movement(position_offset, depth_offset))
        logger.debug('move [%d, %d] by %+d, depth %+d (tree %s): %d rows',
                     left, right, position_offset, depth_offset, tree_value,
                     affected)
        return affected

    def move_across_trees(self, left, right, position_offset, depth_offset,
                          target_tree, current_tree):
        """
        Relocates the ``[left, right]`` block of ``current_tree`` into
        ``target_tree``, whose gap must already be open.
        """
        values = self._movement(position_offset, depth_offset)
        values[self.fields.tree] = target_tree
        affected = self._queryset(
            self.conditions.subtree(left, right, current_tree)
        ).update(**values)
        logger.debug('move [%d, %d] of tree %s to tree %s at %+d: %d rows',
                     left, right, current_tree, target_tree,
                     position_offset, affected)
        return affected

    def promote_to_root(self, left, right, depth, new_tree, current_tree):
        """
        Turns the ``[left, right]`` block into a tree of its own, starting
        at ``left == 1`` and ``depth == 0``.
        """
        return self.move_across_trees(left, right, 1 - left, -depth,
                                      new_tree, current_tree)

    def lift_descendants(self, left, right, tree_value=None):
        """
        Promotes everything inside ``[left, right]`` one level up, once the
        node owning that interval has been deleted.
        """
        affected = self._queryset(
            self.conditions.subtree(left, right, tree_value)
        ).update(**self._movement(-1, -1))
        logger.debug('lift [%d, %d] (tree %s): %d rows',
                     left, right, tree_value, affected)
        return affected

    def delete_range(self, left, right, tree_value=None):
        """:returns: the number of tree rows deleted."""
        _, per_model = self._queryset(
            self.conditions.subtree(left, right, tree_value)).delete()
        labels = {self.model._meta.label,
                  self.model._meta.concrete_model._meta.label}
        deleted = sum(per_model.get(label, 0) for label in labels)
        logger.debug('delete [%d, %d] (tree %s): %d rows',
                     left, right, tree_value, deleted)
        return deleted

    def assign_tree(self, pk, tree_value):
        return self.model._base_manager.filter(pk=pk).update(
            **{self.fields.tree: tree_value})
