"""
test_avl.py

Tests for the AVL engine.

Tests prove:
- Balance checks are reported bottom-up along the insertion path
- Each of the four rotation shapes is detected and recorded
- Rotation actions carry the parent key and a snapshot taken after
  the rotated subtree was linked back in
- Heights stay correct after deletes that rebalance
"""

import pytest

from treetrace.actions import Action, OperationTag
from treetrace.avl import AvlEngine, rotate_left, rotate_right
from treetrace.errors import InvariantViolationError
from treetrace.nodes import AvlNode
from treetrace.tree import Tree

BALANCED_INSERT = "Insertion complete, tree is balanced."
BALANCED_DELETE = "Deletion complete, tree is balanced."


def build(*keys):
    tree = Tree("avl")
    for key in keys:
        tree.insert(key)
    return tree


# =============================================================================
# Insert
# =============================================================================

class TestInsert:
    """Insert traces and rotations."""

    def test_insert_without_rotation(self):
        tree = build(10)
        trace = tree.insert(20)
        assert list(trace) == [
            Action(OperationTag.RESIZE, ()),
            Action(OperationTag.RESIZE, (2,)),
            Action(OperationTag.DESCEND_RIGHT, (20, 10)),
            Action(OperationTag.APPEND_RIGHT, (20, 10)),
            Action(OperationTag.BALANCE_OK, (10,)),
            Action(OperationTag.END_OF_SEQUENCE, (BALANCED_INSERT,)),
        ]

    def test_right_right_case_rotates_left(self):
        tree = build(10, 20)
        trace = tree.insert(30)

        assert trace.tags == (
            OperationTag.RESIZE,
            OperationTag.RESIZE,
            OperationTag.DESCEND_RIGHT,
            OperationTag.DESCEND_RIGHT,
            OperationTag.APPEND_RIGHT,
            OperationTag.BALANCE_OK,
            OperationTag.BALANCE_VIOLATION,
            OperationTag.ROTATE_LEFT,
            OperationTag.END_OF_SEQUENCE,
        )
        assert trace[1].payload == (3,)
        assert trace[6].payload == (10,)

        (rotation,) = trace.find_all(OperationTag.ROTATE_LEFT)
        assert rotation.payload[:4] == (10, 20, None, None)
        assert rotation.snapshot.root.key == 20
        assert rotation.snapshot.root.height == 2
        assert tree.root.key == 20

    def test_left_left_case_rotates_right(self):
        tree = build(30, 20)
        trace = tree.insert(10)
        (rotation,) = trace.find_all(OperationTag.ROTATE_RIGHT)
        assert rotation.payload[:4] == (30, 20, None, None)
        assert trace.count(OperationTag.ROTATE_LEFT) == 0
        assert tree.root.key == 20

    def test_right_left_case(self):
        tree = build(10, 30)
        trace = tree.insert(20)

        rotations = [a for a in trace if a.tag in (OperationTag.ROTATE_LEFT, OperationTag.ROTATE_RIGHT)]
        assert [a.tag for a in rotations] == [OperationTag.ROTATE_RIGHT, OperationTag.ROTATE_LEFT]
        # inner rotation hangs from 10, outer rotation is at the root
        assert rotations[0].payload[:4] == (30, 20, None, 10)
        assert rotations[1].payload[:4] == (10, 20, None, None)
        assert tree.root.key == 20
        assert tree.keys() == (10, 20, 30)

    def test_left_right_case(self):
        tree = build(30, 10)
        trace = tree.insert(20)
        rotations = [a for a in trace if a.tag in (OperationTag.ROTATE_LEFT, OperationTag.ROTATE_RIGHT)]
        assert [a.tag for a in rotations] == [OperationTag.ROTATE_LEFT, OperationTag.ROTATE_RIGHT]
        assert rotations[0].payload[:4] == (10, 20, None, 30)
        assert tree.root.key == 20

    def test_rotation_with_displaced_subtree(self):
        tree = build(20, 10, 30, 25, 40)
        trace = tree.insert(50)
        (rotation,) = trace.find_all(OperationTag.ROTATE_LEFT)
        assert rotation.payload[:4] == (20, 30, 25, None)
        assert tree.root.key == 30
        assert tree.root.left.right.key == 25
        tree.validate()

    def test_rotation_below_root_reports_parent(self):
        tree = build(20, 10, 30, 40)
        trace = tree.insert(50)
        (rotation,) = trace.find_all(OperationTag.ROTATE_LEFT)
        assert rotation.payload[:4] == (30, 40, None, 20)
        assert rotation.snapshot.get(20).right.key == 40
        tree.validate()


# =============================================================================
# Delete
# =============================================================================

class TestDelete:
    """Delete traces and rebalancing."""

    def test_delete_root_with_two_children(self):
        tree = build(10, 20, 30)
        trace = tree.delete(20)
        assert trace.tags == (
            OperationTag.MATCH_FOR_SUCCESSOR,
            OperationTag.SEARCH_MINIMUM,
            OperationTag.SWAP_VALUES,
            OperationTag.MATCH_FOR_DELETE,
            OperationTag.REMOVE_LEAF,
            OperationTag.RESIZE,
            OperationTag.BALANCE_OK,
            OperationTag.END_OF_SEQUENCE,
        )
        assert trace[2].payload == (20, 30)
        assert trace[6].payload == (30,)
        assert trace.last().payload == (BALANCED_DELETE,)
        assert tree.root.key == 30
        assert tree.root.left.key == 10

    def test_delete_triggers_rotation(self):
        tree = build(20, 10, 30, 5)
        trace = tree.delete(30)
        assert trace.tags == (
            OperationTag.DESCEND_RIGHT,
            OperationTag.MATCH_FOR_DELETE,
            OperationTag.REMOVE_LEAF,
            OperationTag.RESIZE,
            OperationTag.BALANCE_VIOLATION,
            OperationTag.ROTATE_RIGHT,
            OperationTag.END_OF_SEQUENCE,
        )
        assert trace[5].payload[:4] == (20, 10, None, None)
        assert tree.root.key == 10
        assert tree.root.height == 2
        tree.validate()

    def test_delete_triggers_double_rotation(self):
        tree = build(20, 10, 30, 15)
        trace = tree.delete(30)
        rotations = [a.tag for a in trace if a.tag in (OperationTag.ROTATE_LEFT, OperationTag.ROTATE_RIGHT)]
        assert rotations == [OperationTag.ROTATE_LEFT, OperationTag.ROTATE_RIGHT]
        assert tree.root.key == 15
        tree.validate()

    def test_delete_leaf_reports_no_balance_for_spliced_node(self):
        tree = build(10, 5)
        trace = tree.delete(5)
        assert trace.find_all(OperationTag.BALANCE_OK) == (
            Action(OperationTag.BALANCE_OK, (10,)),
        )

    def test_delete_only_key(self):
        tree = build(10)
        trace = tree.delete(10)
        assert trace[2] == Action(OperationTag.RESIZE, (False, None))
        assert tree.is_empty


# =============================================================================
# Rotations
# =============================================================================

class TestRotations:
    """Rotation helpers."""

    def test_rotate_left_updates_heights(self):
        pivot = AvlNode(1, right=AvlNode(2, right=AvlNode(3), height=2), height=3)
        new_root, pending = rotate_left(pivot)
        assert new_root.key == 2
        assert new_root.height == 2
        assert pivot.height == 1
        assert pending.tag is OperationTag.ROTATE_LEFT

    def test_rotate_left_without_right_child_raises(self):
        with pytest.raises(InvariantViolationError) as exc_info:
            rotate_left(AvlNode(1))
        assert exc_info.value.node_key == 1

    def test_rotate_right_without_left_child_raises(self):
        with pytest.raises(InvariantViolationError):
            rotate_right(AvlNode(1))

    def test_engine_is_usable_directly(self):
        engine = AvlEngine()
        engine.insert(1)
        engine.insert(2)
        engine.insert(3)
        assert engine.root.key == 2
        assert engine.find(3)
