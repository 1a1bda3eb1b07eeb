"""
bst.py

Unbalanced binary search tree engine.

Every insert and delete returns an ActionTrace explaining the walk down
the tree and every structural change. Delete frames return the new
subtree root together with a pending record, which the caller settles
once the subtree is linked back in.
"""

import logging
from typing import Any, Optional, Tuple

from treetrace.actions import ActionTrace, Operation, OperationTag
from treetrace.config import TreeConfig
from treetrace.nodes import PlainNode, Variant, find, minimum
from treetrace.recorder import PendingRecord, PendingResize, TraceRecorder

logger = logging.getLogger(__name__)


class BstEngine:
    """
    Plain BST with instrumented insert/delete.

    Preconditions (not checked here): insert keys are not already stored,
    delete keys are stored. Use treetrace.tree.Tree for validation.
    """

    variant = Variant.BST

    def __init__(self, config: Optional[TreeConfig] = None):
        self.root: Optional[PlainNode] = None
        self._config = config or TreeConfig()

    def find(self, key: Any) -> bool:
        return find(self.root, key)

    def clear(self) -> None:
        self.root = None

    # =========================================================================
    # Insert
    # =========================================================================

    def insert(self, key: Any) -> ActionTrace:
        """Insert key and return the trace of the call."""
        if self.root is None:
            self.root = PlainNode(key)
            logger.debug("bst created with root %r", key)
            return ActionTrace.created(self.variant, key)

        recorder = TraceRecorder(self.variant, Operation.INSERT, key)
        self._insert(self.root, key, recorder)
        return recorder.finish(
            self._config.completion_message(self.variant, "insert"),
            lead_resize=True,
        )

    def _insert(self, node: PlainNode, key: Any, recorder: TraceRecorder) -> None:
        if key < node.key:
            recorder.emit(OperationTag.DESCEND_LEFT, key, node.key)
            if node.left is None:
                node.left = PlainNode(key)
                recorder.emit(OperationTag.APPEND_LEFT, key, node.key)
            else:
                self._insert(node.left, key, recorder)
        else:
            recorder.emit(OperationTag.DESCEND_RIGHT, key, node.key)
            if node.right is None:
                node.right = PlainNode(key)
                recorder.emit(OperationTag.APPEND_RIGHT, key, node.key)
            else:
                self._insert(node.right, key, recorder)

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, key: Any) -> ActionTrace:
        """Delete key and return the trace of the call."""
        recorder = TraceRecorder(self.variant, Operation.DELETE, key)
        self.root, pending = self._delete(self.root, key, recorder)
        recorder.settle(pending, self.root)
        return recorder.finish(self._config.completion_message(self.variant, "delete"))

    def _delete(
        self,
        node: Optional[PlainNode],
        key: Any,
        recorder: TraceRecorder,
    ) -> Tuple[Optional[PlainNode], Optional[PendingRecord]]:
        if node is None:
            return None, None

        if key < node.key:
            recorder.emit(OperationTag.DESCEND_LEFT, key, node.key)
            node.left, pending = self._delete(node.left, key, recorder)
            recorder.settle(pending, self.root)
        elif key > node.key:
            recorder.emit(OperationTag.DESCEND_RIGHT, key, node.key)
            node.right, pending = self._delete(node.right, key, recorder)
            recorder.settle(pending, self.root)
        elif node.left is not None and node.right is not None:
            recorder.emit(OperationTag.MATCH_FOR_SUCCESSOR, key)
            old_key = node.key
            node.key = minimum(node.right, recorder)
            recorder.emit(OperationTag.SWAP_VALUES, old_key, node.key)
            node.right, pending = self._delete(node.right, node.key, recorder)
            recorder.settle(pending, self.root)
        else:
            recorder.emit(OperationTag.MATCH_FOR_DELETE, node.key)
            child = node.left if node.left is not None else node.right
            if child is None:
                recorder.emit(OperationTag.REMOVE_LEAF, node.key)
            else:
                recorder.emit(OperationTag.REPLACE_WITH_CHILD, node.key)
            return child, PendingResize(child is not None)

        return node, None
