"""
red_black.py

Red-Black tree engine.

Red-Black Properties:
1. Every node is red or black
2. The root is black
3. Null leaves count as black
4. A red node has only black children
5. Every path from a node to its null leaves has the same number of
   black nodes

Insert and delete walk the tree iteratively and repair the properties
with the classic fixup loops. Parents are weak references, so rotations
relink three places: the moved child's parent, the grandparent's child
slot (or the tree root), and the pivot itself. Each rotation is settled
into an action as soon as it happens, since the whole tree is reachable
from self.root at that point.
"""

import logging
from typing import Any, Optional, Tuple

from treetrace.actions import ActionTrace, ColorChange, Operation, OperationTag
from treetrace.config import TreeConfig
from treetrace.errors import InvariantViolationError
from treetrace.nodes import Color, RedBlackNode, Variant, find, is_black, minimum
from treetrace.recorder import PendingRotation, TraceRecorder
from treetrace.snapshot import take_snapshot

logger = logging.getLogger(__name__)


def _change(node: RedBlackNode, color: Color) -> ColorChange:
    return ColorChange(node.key, color)


class RedBlackEngine:
    """
    Red-Black tree with instrumented insert/delete.

    Preconditions (not checked here): insert keys are not already stored,
    delete keys are stored. Use treetrace.tree.Tree for validation.
    """

    variant = Variant.RED_BLACK

    def __init__(self, config: Optional[TreeConfig] = None):
        self.root: Optional[RedBlackNode] = None
        self._config = config or TreeConfig()

    def find(self, key: Any) -> bool:
        return find(self.root, key)

    def clear(self) -> None:
        self.root = None

    # =========================================================================
    # Rotations
    # =========================================================================

    def _replace_child(
        self,
        parent: Optional[RedBlackNode],
        old: RedBlackNode,
        new: Optional[RedBlackNode],
    ) -> None:
        """Point the slot that held old at new (the root slot when parent is None)."""
        if parent is None:
            self.root = new
        elif parent.left is old:
            parent.left = new
        else:
            parent.right = new
        if new is not None:
            new.parent = parent

    def _rotate_left(self, pivot: RedBlackNode) -> Tuple[PendingRotation, Any]:
        new_root = pivot.right
        if new_root is None:
            raise InvariantViolationError(
                "left rotation needs a right child", node_key=pivot.key,
            )
        parent = pivot.parent
        displaced = new_root.left

        pivot.right = displaced
        if displaced is not None:
            displaced.parent = pivot
        self._replace_child(parent, pivot, new_root)
        new_root.left = pivot
        pivot.parent = new_root

        pending = PendingRotation(
            OperationTag.ROTATE_LEFT,
            pivot.key,
            new_root.key,
            displaced.key if displaced is not None else None,
        )
        return pending, parent.key if parent is not None else None

    def _rotate_right(self, pivot: RedBlackNode) -> Tuple[PendingRotation, Any]:
        new_root = pivot.left
        if new_root is None:
            raise InvariantViolationError(
                "right rotation needs a left child", node_key=pivot.key,
            )
        parent = pivot.parent
        displaced = new_root.right

        pivot.left = displaced
        if displaced is not None:
            displaced.parent = pivot
        self._replace_child(parent, pivot, new_root)
        new_root.right = pivot
        pivot.parent = new_root

        pending = PendingRotation(
            OperationTag.ROTATE_RIGHT,
            pivot.key,
            new_root.key,
            displaced.key if displaced is not None else None,
        )
        return pending, parent.key if parent is not None else None

    def _rotate(self, pivot: RedBlackNode, left: bool, recorder: TraceRecorder) -> None:
        """Rotate at pivot and record the rotation against the current tree."""
        if left:
            pending, parent_key = self._rotate_left(pivot)
        else:
            pending, parent_key = self._rotate_right(pivot)
        recorder.settle(pending, self.root, parent_key)

    # =========================================================================
    # Insert
    # =========================================================================

    def insert(self, key: Any) -> ActionTrace:
        """Insert key, repair colors, and return the trace of the call."""
        if self.root is None:
            self.root = RedBlackNode(key, color=Color.BLACK)
            logger.debug("red-black created with root %r", key)
            return ActionTrace.created(self.variant, key)

        recorder = TraceRecorder(self.variant, Operation.INSERT, key)

        node = self.root
        while True:
            if key < node.key:
                recorder.emit(OperationTag.DESCEND_LEFT, key, node.key)
                if node.left is None:
                    new_node = RedBlackNode(key)
                    new_node.parent = node
                    node.left = new_node
                    recorder.note_height(self.root)
                    recorder.emit(OperationTag.APPEND_LEFT, key, node.key)
                    break
                node = node.left
            else:
                recorder.emit(OperationTag.DESCEND_RIGHT, key, node.key)
                if node.right is None:
                    new_node = RedBlackNode(key)
                    new_node.parent = node
                    node.right = new_node
                    recorder.note_height(self.root)
                    recorder.emit(OperationTag.APPEND_RIGHT, key, node.key)
                    break
                node = node.right

        recorder.emit(OperationTag.BEGIN_FIXUP, new_node.key)
        self._fix_insert(new_node, recorder)

        return recorder.finish(
            self._config.completion_message(self.variant, "insert"),
            lead_resize=True,
        )

    def _fix_insert(self, child: RedBlackNode, recorder: TraceRecorder) -> None:
        if child.parent is None:
            child.color = Color.BLACK
            recorder.emit(OperationTag.ROOT_RECOLOR_TERMINAL, _change(child, Color.BLACK))
            return
        if child.parent.parent is None:
            recorder.emit(OperationTag.PARENT_BLACK_TERMINAL, child.key)
            return

        while child.parent is not None and child.parent.is_red:
            parent = child.parent
            grandparent = parent.parent
            parent_is_right = parent is grandparent.right
            uncle = grandparent.left if parent_is_right else grandparent.right

            if uncle is not None and uncle.is_red:
                parent.color = Color.BLACK
                uncle.color = Color.BLACK
                grandparent.color = Color.RED
                recorder.emit(
                    OperationTag.RECOLOR_GRANDPARENT_CASE,
                    _change(parent, Color.BLACK),
                    _change(uncle, Color.BLACK),
                    _change(grandparent, Color.RED),
                )
                child = grandparent
                description = "was previously the grandparent"
            else:
                description = "same node as before"
                inner = (child is parent.left) if parent_is_right else (child is parent.right)
                if inner:
                    child = parent
                    description = "was previously the parent"
                    self._rotate(child, not parent_is_right, recorder)

                child.parent.color = Color.BLACK
                grandparent.color = Color.RED
                if grandparent is child.parent:
                    recorder.emit(
                        OperationTag.RECOLOR_GRANDPARENT,
                        _change(grandparent, Color.RED),
                    )
                else:
                    recorder.emit(
                        OperationTag.RECOLOR_PARENT_GRANDPARENT,
                        _change(child.parent, Color.BLACK),
                        _change(grandparent, Color.RED),
                    )
                self._rotate(grandparent, parent_is_right, recorder)

            recorder.emit(OperationTag.ADVANCE_FIXUP_POINTER, child.key, description)
            if child is self.root:
                recorder.emit(
                    OperationTag.ROOT_RECOLOR_TERMINAL, _change(child, Color.BLACK),
                )
                break

        if child.parent is not None and not child.parent.is_red:
            if self.root.is_red:
                recorder.emit(
                    OperationTag.PARENT_BLACK_ROOT_RECOLOR,
                    child.key,
                    _change(self.root, Color.BLACK),
                )
            else:
                recorder.emit(OperationTag.PARENT_BLACK_TERMINAL, child.key)
        self.root.color = Color.BLACK

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, key: Any) -> ActionTrace:
        """Delete key, repair colors, and return the trace of the call."""
        recorder = TraceRecorder(self.variant, Operation.DELETE, key)
        self._delete(key, recorder)
        return recorder.finish(self._config.completion_message(self.variant, "delete"))

    def _delete(self, key: Any, recorder: TraceRecorder) -> None:
        node = self.root
        while node is not None:
            if key < node.key:
                recorder.emit(OperationTag.DESCEND_LEFT, key, node.key)
                node = node.left
            elif key > node.key:
                recorder.emit(OperationTag.DESCEND_RIGHT, key, node.key)
                node = node.right
            elif node.left is not None and node.right is not None:
                old_key = node.key
                recorder.emit(OperationTag.MATCH_FOR_SUCCESSOR, key)
                node.key = minimum(node.right, recorder)
                recorder.emit(OperationTag.SWAP_VALUES, old_key, node.key)
                key = node.key
                node = node.right
            else:
                self._remove(node, recorder)
                return

    def _remove(self, node: RedBlackNode, recorder: TraceRecorder) -> None:
        """Splice out a node with at most one child and repair the colors."""
        recorder.emit(OperationTag.MATCH_FOR_DELETE, node.key)
        successor = node.left if node.left is not None else node.right
        parent = node.parent

        if successor is None:
            recorder.emit(OperationTag.REMOVE_LEAF, node.key)
            if parent is None:
                recorder.emit(OperationTag.RESIZE, False, None)
                self.root = None
                return
        else:
            recorder.emit(OperationTag.REPLACE_WITH_CHILD, node.key)

        self._replace_child(parent, node, successor)
        recorder.emit(
            OperationTag.RESIZE,
            successor is not None,
            take_snapshot(self.root, self.variant),
        )

        if not node.is_red and is_black(successor):
            if successor is None:
                recorder.emit(
                    OperationTag.FORMER_POSITION_NOTE,
                    node.key,
                    parent.key if parent is not None else None,
                )
            else:
                recorder.emit(OperationTag.BEGIN_FIXUP, successor.key)
            self._delete_fix(parent, successor, recorder)
        elif successor is not None and successor.is_red:
            successor.color = Color.BLACK
            recorder.emit(OperationTag.RECOLOR_NODE, _change(successor, Color.BLACK))
        else:
            recorder.emit(OperationTag.NO_VIOLATION)

    def _delete_fix(
        self,
        parent: Optional[RedBlackNode],
        node: Optional[RedBlackNode],
        recorder: TraceRecorder,
    ) -> None:
        """
        Resolve a double black at node (possibly a null leaf) under parent.

        Cases, for node on the left (the right side mirrors them):
        - red sibling: recolor, rotate parent left, continue
        - black sibling, black nephews: sibling red, move up to parent
        - black sibling, black far nephew: rotate sibling right first
        - black sibling, red far nephew: recolor, rotate parent left, done
        """
        while node is not self.root and is_black(node):
            if parent is None:
                raise InvariantViolationError("double black without a parent")
            node_is_left = parent.left is node
            sibling = parent.right if node_is_left else parent.left
            if sibling is None:
                raise InvariantViolationError(
                    "double black node has no sibling", node_key=parent.key,
                )

            if sibling.is_red:
                sibling.color = Color.BLACK
                parent.color = Color.RED
                recorder.emit(
                    OperationTag.RECOLOR_SIBLING_ROTATE_CASE,
                    _change(parent, Color.RED),
                    _change(sibling, Color.BLACK),
                )
                self._rotate(parent, node_is_left, recorder)
                sibling = parent.right if node_is_left else parent.left

            near = sibling.left if node_is_left else sibling.right
            far = sibling.right if node_is_left else sibling.left

            if is_black(near) and is_black(far):
                sibling.color = Color.RED
                recorder.emit(OperationTag.SIBLING_RECOLOR, _change(sibling, Color.RED))
                node = parent
                parent = node.parent
                recorder.emit(
                    OperationTag.ADVANCE_FIXUP_POINTER,
                    node.key,
                    "was previously the parent",
                )
                continue

            if is_black(far):
                if near is not None and near.is_red:
                    near.color = Color.BLACK
                    recorder.emit(
                        OperationTag.SIBLING_NEPHEW_RECOLOR,
                        _change(sibling, Color.RED),
                        _change(near, Color.BLACK),
                    )
                else:
                    recorder.emit(
                        OperationTag.SIBLING_RECOLOR, _change(sibling, Color.RED),
                    )
                sibling.color = Color.RED
                self._rotate(sibling, not node_is_left, recorder)
                sibling = parent.right if node_is_left else parent.left
                far = sibling.right if node_is_left else sibling.left

            sibling.color = parent.color
            parent.color = Color.BLACK
            if far is not None and far.is_red:
                far.color = Color.BLACK
                recorder.emit(
                    OperationTag.DOUBLE_BLACK_RECOLOR_ROTATE,
                    _change(sibling, sibling.color),
                    _change(parent, Color.BLACK),
                    _change(far, Color.BLACK),
                    "right" if node_is_left else "left",
                )
            else:
                recorder.emit(
                    OperationTag.DOUBLE_BLACK_RECOLOR_ROTATE,
                    _change(sibling, sibling.color),
                    _change(parent, Color.BLACK),
                    None,
                    None,
                )
            self._rotate(parent, node_is_left, recorder)
            node = self.root

        if self.root is not None and self.root.is_red:
            recorder.emit(
                OperationTag.FINAL_BLACKEN, _change(self.root, Color.BLACK), True,
            )
            self.root.color = Color.BLACK
        elif node is not None and node.is_red:
            recorder.emit(OperationTag.FINAL_BLACKEN, _change(node, Color.BLACK), False)
            node.color = Color.BLACK
