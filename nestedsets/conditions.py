"""
    nestedsets.conditions
    ---------------------

    Builders for the interval filters used to select rows, both for reading
    (ancestors, descendants, siblings, leaves) and for the bulk updates that
    renumber a tree.

    Every builder returns a :class:`~django.db.models.Q` object. Filters
    that only make sense inside one tree go through :meth:`tree_scoped`, so
    that a model with multiple trees never mixes rows of unrelated trees.
"""

from django.db.models import F, Q


class RangeConditions:
    """Stateless factory of ``Q`` objects for a set of tree columns."""

    def __init__(self, fields):
        self.fields = fields

    def _lookup(self, attribute, lookup, value):
        return Q(**{'%s__%s' % (attribute, lookup): value})

    def in_tree(self, tree_value):
        """:returns: the tree equality clause, or an empty ``Q`` for a
            model with a single tree."""
        if not self.fields.multi_tree:
            return Q()
        return Q(**{self.fields.tree: tree_value})

    def tree_scoped(self, condition, tree_value):
        if not self.fields.multi_tree:
            return condition
        return condition & self.in_tree(tree_value)

    def within(self, left, right, inclusive=False):
        """Rows whose interval lies inside ``(left, right)``."""
        if inclusive:
            return (self._lookup(self.fields.left, 'gte', left) &
                    self._lookup(self.fields.right, 'lte', right))
        return (self._lookup(self.fields.left, 'gt', left) &
                self._lookup(self.fields.right, 'lt', right))

    def subtree(self, left, right, tree_value):
        """A node and all of its descendants."""
        return self.tree_scoped(self.within(left, right, True), tree_value)

    def boundary_from(self, attribute, value, tree_value):
        """Rows where ``attribute`` is greater than or equal to ``value``."""
        return self.tree_scoped(
            self._lookup(attribute, 'gte', value), tree_value)

    def depth_within(self, depth, levels, upwards=False):
        if upwards:
            return self._lookup(self.fields.depth, 'gte', depth - levels)
        return self._lookup(self.fields.depth, 'lte', depth + levels)

    def ancestors(self, bounds, depth=None):
        condition = (self._lookup(self.fields.left, 'lt', bounds.left) &
                     self._lookup(self.fields.right, 'gt', bounds.right))
        if depth is not None:
            condition &= self.depth_within(bounds.depth, depth, upwards=True)
        return self.tree_scoped(condition, bounds.tree)

    def descendants(self, bounds, depth=None):
        condition = self.within(bounds.left, bounds.right)
        if depth is not None:
            condition &= self.depth_within(bounds.depth, depth)
        return self.tree_scoped(condition, bounds.tree)

    def next_sibling(self, bounds):
        return self.tree_scoped(
            Q(**{self.fields.left: bounds.right + 1}), bounds.tree)

    def previous_sibling(self, bounds):
        return self.tree_scoped(
            Q(**{self.fields.right: bounds.left - 1}), bounds.tree)

    def leaf(self):
        return Q(**{self.fields.right: F(self.fields.left) + 1})

    def root(self):
        return Q(**{self.fields.left: 1})

    def leaves_of(self, bounds):
        return self.descendants(bounds) & self.leaf()
