"""
avl.py

AVL tree engine.

Follows the recursive shape of the plain BST engine, but every frame
returns its (possibly new) subtree root, because rotations replace
subtree roots. After each recursion the frame refreshes its cached
height, reports whether it is balanced, and rotates when it is not.

Balance = height(left) - height(right):
- balance > 1: left heavy; single right rotation or left-right
- balance < -1: right heavy; single left rotation or right-left
"""

import logging
from typing import Any, Optional, Tuple

from treetrace.actions import ActionTrace, Operation, OperationTag
from treetrace.config import TreeConfig
from treetrace.errors import InvariantViolationError
from treetrace.nodes import AvlNode, Variant, find, minimum
from treetrace.recorder import (
    PendingRecord,
    PendingResize,
    PendingRotation,
    TraceRecorder,
)

logger = logging.getLogger(__name__)

Frame = Tuple[Optional[AvlNode], Optional[PendingRecord]]


def node_height(node: Optional[AvlNode]) -> int:
    """Cached height; 0 for an empty subtree."""
    if node is None:
        return 0
    return node.height


def balance_of(node: AvlNode) -> int:
    return node_height(node.left) - node_height(node.right)


def update_height(node: AvlNode) -> None:
    node.height = max(node_height(node.left), node_height(node.right)) + 1


def rotate_left(pivot: AvlNode) -> Tuple[AvlNode, PendingRotation]:
    """
    Left-rotate the subtree rooted at pivot.

    Before:       After:
        p             r
       / \\           / \\
      a   r         p   c
         / \\       / \\
        b   c     a   b

    Returns:
        The new subtree root and the rotation to settle.
    """
    new_root = pivot.right
    if new_root is None:
        raise InvariantViolationError(
            "left rotation needs a right child", node_key=pivot.key,
        )
    displaced = new_root.left

    new_root.left = pivot
    pivot.right = displaced

    update_height(pivot)
    update_height(new_root)

    return new_root, PendingRotation(
        OperationTag.ROTATE_LEFT,
        pivot.key,
        new_root.key,
        displaced.key if displaced is not None else None,
    )


def rotate_right(pivot: AvlNode) -> Tuple[AvlNode, PendingRotation]:
    """Right-rotate the subtree rooted at pivot (mirror of rotate_left)."""
    new_root = pivot.left
    if new_root is None:
        raise InvariantViolationError(
            "right rotation needs a left child", node_key=pivot.key,
        )
    displaced = new_root.right

    new_root.right = pivot
    pivot.left = displaced

    update_height(pivot)
    update_height(new_root)

    return new_root, PendingRotation(
        OperationTag.ROTATE_RIGHT,
        pivot.key,
        new_root.key,
        displaced.key if displaced is not None else None,
    )


class AvlEngine:
    """
    AVL tree with instrumented insert/delete.

    Preconditions (not checked here): insert keys are not already stored,
    delete keys are stored. Use treetrace.tree.Tree for validation.
    """

    variant = Variant.AVL

    def __init__(self, config: Optional[TreeConfig] = None):
        self.root: Optional[AvlNode] = None
        self._config = config or TreeConfig()

    def find(self, key: Any) -> bool:
        return find(self.root, key)

    def clear(self) -> None:
        self.root = None

    # =========================================================================
    # Insert
    # =========================================================================

    def insert(self, key: Any) -> ActionTrace:
        """Insert key, rebalance, and return the trace of the call."""
        if self.root is None:
            self.root = AvlNode(key)
            logger.debug("avl created with root %r", key)
            return ActionTrace.created(self.variant, key)

        recorder = TraceRecorder(self.variant, Operation.INSERT, key)
        self.root, pending = self._insert(self.root, key, recorder)
        recorder.settle(pending, self.root)
        return recorder.finish(
            self._config.completion_message(self.variant, "insert"),
            lead_resize=True,
        )

    def _insert(self, node: AvlNode, key: Any, recorder: TraceRecorder) -> Frame:
        if key < node.key:
            if node.left is None:
                node.left = AvlNode(key)
                recorder.note_height(self.root)
                recorder.emit(OperationTag.DESCEND_LEFT, key, node.key)
                recorder.emit(OperationTag.APPEND_LEFT, key, node.key)
            else:
                recorder.emit(OperationTag.DESCEND_LEFT, key, node.key)
                node.left, pending = self._insert(node.left, key, recorder)
                recorder.settle(pending, self.root, node.key)
        else:
            if node.right is None:
                node.right = AvlNode(key)
                recorder.note_height(self.root)
                recorder.emit(OperationTag.DESCEND_RIGHT, key, node.key)
                recorder.emit(OperationTag.APPEND_RIGHT, key, node.key)
            else:
                recorder.emit(OperationTag.DESCEND_RIGHT, key, node.key)
                node.right, pending = self._insert(node.right, key, recorder)
                recorder.settle(pending, self.root, node.key)

        update_height(node)
        balance = balance_of(node)

        if balance > 1:
            recorder.emit(OperationTag.BALANCE_VIOLATION, node.key)
            if key < node.left.key:
                return rotate_right(node)
            node.left, pending = rotate_left(node.left)
            recorder.settle(pending, self.root, node.key)
            return rotate_right(node)

        if balance < -1:
            recorder.emit(OperationTag.BALANCE_VIOLATION, node.key)
            if key > node.right.key:
                return rotate_left(node)
            node.right, pending = rotate_right(node.right)
            recorder.settle(pending, self.root, node.key)
            return rotate_left(node)

        recorder.emit(OperationTag.BALANCE_OK, node.key)
        return node, None

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, key: Any) -> ActionTrace:
        """Delete key, rebalance, and return the trace of the call."""
        recorder = TraceRecorder(self.variant, Operation.DELETE, key)
        self.root, pending = self._delete(self.root, key, recorder)
        recorder.settle(pending, self.root)
        return recorder.finish(self._config.completion_message(self.variant, "delete"))

    def _delete(
        self,
        node: Optional[AvlNode],
        key: Any,
        recorder: TraceRecorder,
    ) -> Frame:
        if node is None:
            return None, None

        if key < node.key:
            recorder.emit(OperationTag.DESCEND_LEFT, key, node.key)
            node.left, pending = self._delete(node.left, key, recorder)
            recorder.settle(pending, self.root, node.key)
        elif key > node.key:
            recorder.emit(OperationTag.DESCEND_RIGHT, key, node.key)
            node.right, pending = self._delete(node.right, key, recorder)
            recorder.settle(pending, self.root, node.key)
        elif node.left is not None and node.right is not None:
            old_key = node.key
            recorder.emit(OperationTag.MATCH_FOR_SUCCESSOR, key)
            node.key = minimum(node.right, recorder)
            recorder.emit(OperationTag.SWAP_VALUES, old_key, node.key)
            node.right, pending = self._delete(node.right, node.key, recorder)
            recorder.settle(pending, self.root, node.key)
        else:
            recorder.emit(OperationTag.MATCH_FOR_DELETE, node.key)
            child = node.left if node.left is not None else node.right
            if child is None:
                recorder.emit(OperationTag.REMOVE_LEAF, node.key)
            else:
                recorder.emit(OperationTag.REPLACE_WITH_CHILD, node.key)
            return child, PendingResize(child is not None)

        update_height(node)
        balance = balance_of(node)

        if balance > 1:
            recorder.emit(OperationTag.BALANCE_VIOLATION, node.key)
            if balance_of(node.left) >= 0:
                return rotate_right(node)
            node.left, pending = rotate_left(node.left)
            recorder.settle(pending, self.root, node.key)
            return rotate_right(node)

        if balance < -1:
            recorder.emit(OperationTag.BALANCE_VIOLATION, node.key)
            if balance_of(node.right) <= 0:
                return rotate_left(node)
            node.right, pending = rotate_right(node.right)
            recorder.settle(pending, self.root, node.key)
            return rotate_left(node)

        recorder.emit(OperationTag.BALANCE_OK, node.key)
        return node, None
