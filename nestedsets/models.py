"""

    nestedsets.models
    -----------------

    Abstract Django models for nested sets trees.

"""

from __future__ import annotations

from django.core import serializers
from django.db import models, router, transaction

from nestedsets.engine import NestedSetEngine, get_result_class
from nestedsets.types import BulkNodeData, Operation, TreeFields


class NestedSetQuerySet(models.query.QuerySet):
    """
    Custom queryset for the tree node manager.

    Adds the ``roots``/``leaves`` filters and keeps the tree consistent when
    deleting.
    """

    def roots(self):
        """:returns: the root nodes, ordered by tree."""
        engine = self.model.get_engine()
        return self.filter(engine.conditions.root()).order_by(
            *engine.tree_ordering + ['pk'])

    def leaves(self):
        """:returns: every leaf node, in tree order."""
        engine = self.model.get_engine()
        return self.filter(engine.conditions.leaf()).order_by(
            *engine.tree_ordering)

    def delete(self):
        """
        Custom delete method, will remove all descendant nodes to ensure a
        consistent tree (no orphans)

        :returns: the number of deleted nodes
        """
        engine = self.model.get_engine()

        # we'll have to manually run through all the nodes that are going
        # to be deleted and remove nodes from the list if an ancestor is
        # already getting removed, since that would be redundant
        removed = []
        for node in self.order_by(*engine.tree_ordering):
            if not any(engine.is_descendant(node, rnode) for rnode in removed):
                removed.append(node)

        # right to left, so every gap we close is after the nodes still
        # waiting to be removed
        deleted = 0
        with transaction.atomic(using=self.db):
            for node in reversed(removed):
                deleted += engine.delete_with_subtree(node)
        return deleted

    delete.alters_data = True
    delete.queryset_only = True


class NestedSetManager(models.Manager):
    """Custom manager for nodes in a Nested Sets tree."""

    def get_queryset(self):
        """Sets the custom queryset as the default."""
        return NestedSetQuerySet(self.model, using=self._db).order_by(
            *self.model.get_engine().tree_ordering)

    def roots(self):
        return self.get_queryset().roots()

    def leaves(self):
        return self.get_queryset().leaves()


class NestedSetNode(models.Model):
    """
    Abstract model to create your own Nested Sets Trees.

    A table holds a single tree. Use :class:`MultiTreeNestedSetNode` to
    store any number of trees in the same table.

    Nodes are created and moved with :meth:`make_root`, :meth:`append_to`,
    :meth:`prepend_to`, :meth:`insert_before` and :meth:`insert_after`;
    the interval columns must never be written directly.
    """

    #: name of the left boundary column
    left_field = 'lft'
    #: name of the right boundary column
    right_field = 'rgt'
    #: name of the depth column, roots have depth 0
    depth_field = 'depth'
    #: name of the column holding the tree value, ``None`` for one tree
    tree_field = None

    lft = models.PositiveIntegerField(db_index=True)
    rgt = models.PositiveIntegerField(db_index=True)
    depth = models.PositiveIntegerField(db_index=True)

    objects = NestedSetManager()

    @classmethod
    def get_tree_fields(cls):
        return TreeFields(cls.left_field, cls.right_field, cls.depth_field,
                          cls.tree_field)

    @classmethod
    def get_engine(cls):
        return NestedSetEngine(cls)

    def _place(self, operation, target=None):
        engine = self.get_engine()
        if engine.is_new(self):
            return engine.insert(self, operation, target)
        return engine.move_node(self, target, operation)

    def make_root(self):
        """
        Creates the root node if the node is new, or moves the node (and its
        descendants) to a tree of its own.

        :raise StructureConflict: when creating a second root without
            :attr:`tree_field`
        :raise UnsupportedOperation: when moving a node as root without
            :attr:`tree_field`
        :raise NoOpMove: when the node is already a root node
        """
        return self._place(Operation.MAKE_ROOT)

    def prepend_to(self, target):
        """Creates or moves the node as the first child of ``target``."""
        return self._place(Operation.PREPEND_TO, target)

    def append_to(self, target):
        """
        Creates or moves the node as the last child of ``target``.

        :raise InvalidTarget: when ``target`` isn't saved
        :raise NoOpMove: when ``target`` is the node itself
        :raise CycleDetected: when ``target`` is a descendant of the node

        Example::

           child = Category(name='Laptops')
           child.append_to(root)
        """
        return self._place(Operation.APPEND_TO, target)

    def insert_before(self, target):
        """Creates or moves the node as the previous sibling of ``target``."""
        return self._place(Operation.INSERT_BEFORE, target)

    def insert_after(self, target):
        """Creates or moves the node as the next sibling of ``target``."""
        return self._place(Operation.INSERT_AFTER, target)

    def move(self, target, operation):
        return self.get_engine().move_node(self, target, operation)

    def save(self, *args, **kwargs):
        engine = self.get_engine()
        pending = self.__dict__.pop('_tree_operation', None)
        with transaction.atomic(
                using=router.db_for_write(self.__class__, instance=self)):
            if engine.is_new(self):
                engine.before_insert(self, pending)
                super().save(*args, **kwargs)
                engine.after_insert(self, pending)
            else:
                bounds = engine.before_update(self, pending)
                # the interval columns are only written by the engine
                kwargs['update_fields'] = self._get_data_fields(
                    engine, kwargs.get('update_fields'))
                super().save(*args, **kwargs)
                engine.after_update(self, pending, bounds)

    save.alters_data = True

    def _get_data_fields(self, engine, update_fields=None):
        structural = engine.fields.structural
        fields = [
            field for field in self._meta.concrete_fields
            if not field.primary_key and field.name not in structural
        ]
        if update_fields is None:
            return [field.name for field in fields]
        allowed = {field.name for field in fields}
        allowed.update(field.attname for field in fields)
        return [name for name in update_fields if name in allowed]

    def delete(self, *args, **kwargs):
        """
        Removes the node. Its descendants are moved one level up.

        :raise InvalidTarget: when the node isn't saved
        :raise UnsupportedOperation: when the node is a root node, use
            :meth:`delete_with_children` instead
        """
        engine = self.get_engine()
        with transaction.atomic(
                using=router.db_for_write(self.__class__, instance=self)):
            bounds = engine.before_delete(self, Operation.DELETE)
            result = super().delete(*args, **kwargs)
            engine.after_delete(self, bounds, Operation.DELETE)
        return result

    delete.alters_data = True

    def delete_with_children(self):
        """
        Removes the node and all its descendants.

        :returns: the number of deleted nodes
        """
        return self.get_engine().delete_with_subtree(self)

    delete_with_children.alters_data = True

    @classmethod
    def get_root_nodes(cls):
        """:returns: A queryset containing the root nodes in the table."""
        return cls.get_engine().roots()

    @classmethod
    def get_first_root_node(cls):
        return cls.get_root_nodes().first()

    @classmethod
    def get_tree(cls, parent=None):
        """
        :returns: A *queryset* of nodes ordered as DFS, including the parent.
            If no parent is given, all trees are returned.
        """
        return cls.get_engine().get_tree(parent)

    @classmethod
    def load_bulk(cls, bulk_data: list[BulkNodeData], parent=None,
                  keep_ids: bool = False) -> list:
        """
        Loads a list/dictionary structure to the tree.

        :param bulk_data:

            The data that will be loaded, the structure is a list of
            dictionaries with 2 keys:

            - ``data``: will store arguments that will be passed for object
              creation, and

            - ``children``: a list of dictionaries, each one has it's own
              ``data`` and ``children`` keys (a recursive structure)

        :param parent:

            The node that will receive the structure as children, if not
            specified the first level of the structure will be loaded as root
            nodes

        :param keep_ids:

            If enabled, loads the nodes with the same primary keys that are
            given in the structure.

        :returns: A list of the added node ids.
        """
        cls = get_result_class(cls, cls.left_field)
        pk_field = cls._meta.pk.attname

        # tree, iterative preorder
        added = []
        # stack of nodes to analyze
        stack = [(parent, node) for node in bulk_data[::-1]]
        with transaction.atomic(using=router.db_for_write(cls)):
            while stack:
                parent, node_struct = stack.pop()
                # shallow copy of the data structure so it doesn't persist...
                node_data = node_struct['data'].copy()
                if keep_ids:
                    node_data[pk_field] = node_struct[pk_field]
                node_obj = cls(**node_data)
                if parent is not None:
                    node_obj.append_to(parent)
                else:
                    node_obj.make_root()
                added.append(node_obj.pk)
                if 'children' in node_struct:
                    # extending the stack with the current node as the parent
                    # of the new nodes
                    stack.extend([(node_obj, node)
                                  for node in node_struct['children'][::-1]])
        return added

    @classmethod
    def dump_bulk(cls, parent=None,
                  keep_ids: bool = True) -> list[BulkNodeData]:
        """Dumps a tree branch to a python data structure."""
        engine = cls.get_engine()
        pk_field = engine.model._meta.pk.attname
        ret = []
        # (right, tree, serialized node) of the nodes still open
        lnk = []
        for pyobj in engine.get_tree(parent):
            serobj = serializers.serialize('python', [pyobj])[0]
            # django's serializer stores the attributes in 'fields'
            fields = serobj['fields']
            # this will be useless in load_bulk
            for name in engine.fields.structural:
                fields.pop(name, None)

            newobj: BulkNodeData = {'data': fields}
            if keep_ids:
                newobj[pk_field] = serobj['pk']

            bounds = engine.bounds(pyobj)
            while lnk and (lnk[-1][1] != bounds.tree or
                           lnk[-1][0] < bounds.left):
                lnk.pop()
            if lnk:
                lnk[-1][2].setdefault('children', []).append(newobj)
            else:
                ret.append(newobj)
            lnk.append((bounds.right, bounds.tree, newobj))
        return ret

    @classmethod
    def find_problems(cls):
        """
        Checks for problems in the tree structure, see
        :meth:`nestedsets.engine.NestedSetEngine.find_problems`.
        """
        return cls.get_engine().find_problems()

    def get_depth(self):
        """:returns: the depth (level) of the node, 0 for root nodes"""
        return getattr(self, self.depth_field)

    def is_new_record(self):
        return self.get_engine().is_new(self)

    def is_root(self):
        """:returns: True if the node is a root node (else, returns False)"""
        return getattr(self, self.left_field) == 1

    def is_leaf(self):
        """:returns: True if the node is a leaf node (else, returns False)"""
        return getattr(self, self.right_field) - \
            getattr(self, self.left_field) == 1

    def is_descendant_of(self, node):
        """
        :returns: ``True`` if the node is a descendant of another node given
            as an argument, else, returns ``False``
        """
        return self.get_engine().is_descendant(self, node)

    def is_child_of(self, node):
        """
        :returns: ``True`` if the node is a direct child of another node
            given as an argument, else, returns ``False``
        """
        return self.is_descendant_of(node) and \
            self.get_depth() == node.get_depth() + 1

    def get_root(self):
        """:returns: the root node for the current node object."""
        if self.is_root():
            return self
        return self.get_engine().root_of(self)

    def get_parent(self):
        """:returns: the parent node, or ``None`` for root nodes."""
        if self.is_root():
            return None
        return self.get_ancestors(1).first()

    def get_ancestors(self, depth=None):
        """
        :returns: A queryset containing the current node object's ancestors,
            starting by the root node and descending to the parent.
        """
        return self.get_engine().ancestors(self, depth)

    def get_descendants(self, depth=None):
        """
        :returns: A queryset of all the node's descendants as DFS, doesn't
            include the node itself
        """
        return self.get_engine().descendants(self, depth)

    def get_descendant_count(self):
        """:returns: the number of descendants of a node."""
        return (getattr(self, self.right_field) -
                getattr(self, self.left_field) - 1) // 2

    def get_children(self):
        """:returns: A queryset of all the node's children"""
        return self.get_engine().children(self)

    def get_leaves(self):
        """:returns: A queryset of the leaves under the node, as DFS"""
        return self.get_engine().leaves(self)

    def get_next_sibling(self):
        """:returns: The next node's sibling, or None if it was the rightmost
            sibling."""
        return self.get_engine().next_sibling(self).first()

    def get_prev_sibling(self):
        """:returns: The previous node's sibling, or None if it was the
            leftmost sibling."""
        return self.get_engine().previous_sibling(self).first()

    class Meta:
        """Abstract model."""
        abstract = True


class MultiTreeNestedSetNode(NestedSetNode):
    """
    Abstract model to store many nested sets trees in one table.

    Every tree is identified by the primary key of its root node, kept in
    :attr:`tree_field` of all of its nodes.
    """

    tree_field = 'tree_id'

    tree_id = models.PositiveIntegerField(db_index=True, null=True)

    class Meta:
        """Abstract model."""
        abstract = True
