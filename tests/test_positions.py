import pytest

from nestedsets.exceptions import InvalidPosition
from nestedsets.positions import Placement, resolve_placement
from nestedsets.types import Operation, TreeFields
from tests import models


@pytest.fixture
def target():
    return models.MultipleTree(name="target", lft=3, rgt=8, depth=2,
                               tree_id=7)


@pytest.mark.parametrize("operation,expected", [
    (Operation.APPEND_TO, (8, 1)),
    (Operation.PREPEND_TO, (4, 1)),
    (Operation.INSERT_AFTER, (9, 0)),
    (Operation.INSERT_BEFORE, (3, 0)),
])
def test_resolve_placement(target, operation, expected):
    placement = resolve_placement(operation, target, TreeFields(tree="tree_id"))
    assert (placement.position, placement.depth_delta) == expected
    assert placement.target_depth == 2
    assert placement.target_tree == 7
    assert placement.depth == 2 + expected[1]


def test_resolve_placement_single_tree(target):
    placement = resolve_placement(Operation.APPEND_TO, target, TreeFields())
    assert placement == Placement(8, 1, 2, None)


def test_resolve_placement_renamed_fields():
    target = models.RenamedTree(name="target", lvalue=1, rvalue=2, level=0)
    fields = models.RenamedTree.get_tree_fields()
    assert resolve_placement(Operation.PREPEND_TO, target, fields) == \
        Placement(2, 1, 0, None)


def test_make_root():
    placement = resolve_placement(Operation.MAKE_ROOT, None, TreeFields())
    assert placement == Placement(1, 0)
    assert placement.depth == 0


@pytest.mark.parametrize("operation", [
    Operation.DELETE, Operation.DELETE_WITH_CHILDREN])
def test_invalid_operation(target, operation):
    with pytest.raises(InvalidPosition):
        resolve_placement(operation, target, TreeFields())
