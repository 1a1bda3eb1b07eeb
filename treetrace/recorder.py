"""
recorder.py

Trace assembly for a single insert/delete call.

Structural changes found deep in a recursion (a node spliced out, a
subtree rotated) can only be shown correctly once the caller has linked
the new subtree root back into the tree. The frame that makes such a
change therefore returns a pending record instead of emitting an action;
the caller frame settles it with a snapshot of the whole tree as it now
stands. Pending records are plain return values, so at most one exists
per frame and none outlives the call.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from treetrace.actions import (
    Action,
    ActionTrace,
    Operation,
    OperationTag,
    ROTATION_TAGS,
)
from treetrace.errors import InvariantViolationError
from treetrace.nodes import Variant, height
from treetrace.snapshot import take_snapshot

logger = logging.getLogger(__name__)


# =============================================================================
# Pending Structural Records
# =============================================================================

@dataclass(frozen=True)
class PendingResize:
    """A node was spliced out; resize_required is True when a child took its place."""
    resize_required: bool


@dataclass(frozen=True)
class PendingRotation:
    """A rotation replaced the subtree root pivot_key with new_root_key."""
    tag: OperationTag
    pivot_key: Any
    new_root_key: Any
    displaced_key: Any = None

    def __post_init__(self):
        if self.tag not in ROTATION_TAGS:
            raise InvariantViolationError(
                f"{self.tag.value} is not a rotation", node_key=self.pivot_key,
            )


PendingRecord = Union[PendingResize, PendingRotation]


# =============================================================================
# TraceRecorder
# =============================================================================

class TraceRecorder:
    """
    Accumulates the actions of one engine call.

    Actions are appended in emission order. finish() appends the
    end-of-sequence action, reverses the list once into a playback stack
    and hands the result to ActionTrace.
    """

    __slots__ = ('variant', 'operation', 'key', '_emitted', '_finished')

    def __init__(self, variant: Variant, operation: Operation, key: Any):
        self.variant = variant
        self.operation = operation
        self.key = key
        self._emitted: List[Action] = []
        self._finished = False

    def __len__(self) -> int:
        return len(self._emitted)

    def emit(self, tag: OperationTag, *payload: Any) -> Action:
        """Append an action in emission order."""
        action = Action(tag, tuple(payload))
        self._emitted.append(action)
        return action

    def emit_first(self, tag: OperationTag, *payload: Any) -> Action:
        """Place an action ahead of everything emitted so far."""
        action = Action(tag, tuple(payload))
        self._emitted.insert(0, action)
        return action

    def note_height(self, root: Any) -> None:
        """Leading resize hint with the height of the tree right after a leaf was attached."""
        self.emit_first(OperationTag.RESIZE, height(root))

    def settle(
        self,
        pending: Optional[PendingRecord],
        root: Any,
        parent_key: Any = None,
    ) -> None:
        """
        Turn a pending record into its final action.

        Args:
            pending: Record returned by the callee, or None
            root: Current root of the whole tree
            parent_key: Key of the node the rotated subtree hangs from
        """
        if pending is None:
            return

        if isinstance(pending, PendingResize):
            snapshot = take_snapshot(root, self.variant) if root is not None else None
            self.emit(OperationTag.RESIZE, pending.resize_required, snapshot)
        elif isinstance(pending, PendingRotation):
            self.emit(
                pending.tag,
                pending.pivot_key,
                pending.new_root_key,
                pending.displaced_key,
                parent_key,
                take_snapshot(root, self.variant),
            )
        else:
            raise InvariantViolationError(
                f"unknown pending record {type(pending).__name__}"
            )

    def finish(self, message: str, *, lead_resize: bool = False) -> ActionTrace:
        """
        Close the call and build its trace.

        Args:
            message: Summary shown when the sequence ends
            lead_resize: Put a bare resize check ahead of everything

        Raises:
            InvariantViolationError: If called twice
        """
        if self._finished:
            raise InvariantViolationError("trace recorder finished twice")
        self._finished = True

        self._emitted.append(Action(OperationTag.END_OF_SEQUENCE, (message,)))
        stack = list(reversed(self._emitted))
        if lead_resize:
            stack.append(Action(OperationTag.RESIZE, ()))

        trace = ActionTrace.from_stack(
            stack,
            variant=self.variant,
            operation=self.operation,
            key=self.key,
        )
        logger.debug(
            "%s %s %r produced %d actions",
            self.variant.value, self.operation.value, self.key, len(trace),
        )
        return trace
