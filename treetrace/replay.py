"""
replay.py

treetrace Trace Replay: read-only playback and explanation of traces.

A TracePlayer pops actions off a trace's playback stack one at a time,
the way an animation front end consumes them. describe() turns a single
action into the caption a viewer would read, explain() summarises a
whole trace, and verify_determinism() compares a trace's content hash
against a recorded one.

Design Invariants:
- Read-only (never touches a live tree)
- Captions depend only on the action and the variant
- Deterministic analysis
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from treetrace.actions import (
    Action,
    ActionTrace,
    ColorChange,
    OperationTag,
    ROTATION_TAGS,
    TraceValidationError,
)
from treetrace.nodes import Variant

# =============================================================================
# Exceptions
# =============================================================================

class TraceReplayError(Exception):
    """Base exception for trace replay errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: str = "TR000",
    ):
        self.message = message
        self.error_code = error_code
        super().__init__(self.format())

    def format(self) -> str:
        """Format as human-readable error message."""
        return f"[{self.error_code}] Trace replay error: {self.message}"


class TraceExhaustedError(TraceReplayError):
    """next() was called after the last action was played."""

    def __init__(self, played: int):
        self.played = played
        super().__init__(
            message=f"no actions left after {played} played",
            error_code="TR001",
        )


class TraceLoadError(TraceReplayError):
    """Failed to load a trace from a file."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        source_info = f" from '{source}'" if source else ""
        super().__init__(
            message=f"Failed to load trace{source_info}: {message}",
            error_code="TR002",
        )


# =============================================================================
# TracePlayer
# =============================================================================

class TracePlayer:
    """
    Step through a trace in replay order.

    Example:
        player = TracePlayer(tree.insert(30))
        while player.has_next:
            print(describe(player.next(), player.variant))
    """

    __slots__ = ('_trace', '_stack', '_played')

    def __init__(self, trace: ActionTrace):
        self._trace = trace
        self._stack: List[Action] = trace.to_stack()
        self._played = 0

    @property
    def trace(self) -> ActionTrace:
        return self._trace

    @property
    def variant(self) -> Variant:
        return self._trace.variant

    @property
    def has_next(self) -> bool:
        return bool(self._stack)

    @property
    def remaining(self) -> int:
        return len(self._stack)

    @property
    def played(self) -> int:
        return self._played

    def peek(self) -> Optional[Action]:
        """The action next() would return, without consuming it."""
        return self._stack[-1] if self._stack else None

    def next(self) -> Action:
        """
        Consume and return the next action.

        Raises:
            TraceExhaustedError: If every action has been played
        """
        if not self._stack:
            raise TraceExhaustedError(self._played)
        self._played += 1
        return self._stack.pop()

    def reset(self) -> None:
        self._stack = self._trace.to_stack()
        self._played = 0

    def __iter__(self) -> Iterator[Action]:
        while self._stack:
            yield self.next()


# =============================================================================
# Captions
# =============================================================================

def _color_word(change: ColorChange) -> str:
    return change.color.value


def _describe_resize(action: Action) -> str:
    payload = action.payload
    if not payload:
        return "Check whether the drawing needs more room."
    if len(payload) == 1:
        return f"Tree height is now {payload[0]}; adjust the layout."
    resize_required, snapshot = payload[0], payload[1]
    if snapshot is None:
        return "The tree is now empty."
    if resize_required:
        return "Move the remaining subtree up and redraw the tree."
    return "Redraw the tree."


def describe(action: Action, variant: Variant) -> str:
    """
    Caption for one action, as shown to someone watching the replay.

    Example:
        describe(Action(OperationTag.DESCEND_LEFT, (5, 10)), Variant.BST)
        # "5 < 10. Check left subtree."
    """
    tag = action.tag
    args = action.payload

    if tag is OperationTag.CREATE_TREE:
        return f"{variant.display_name} was created."
    if tag is OperationTag.APPEND_LEFT:
        return f"Subtree is empty, append {args[0]} as left child."
    if tag is OperationTag.APPEND_RIGHT:
        return f"Subtree is empty, append {args[0]} as right child."
    if tag is OperationTag.DESCEND_LEFT:
        return f"{args[0]} < {args[1]}. Check left subtree."
    if tag is OperationTag.DESCEND_RIGHT:
        return f"{args[0]} > {args[1]}. Check right subtree."
    if tag is OperationTag.RESIZE:
        return _describe_resize(action)
    if tag is OperationTag.MATCH_FOR_SUCCESSOR:
        return (
            f"Node {args[0]} found. "
            "Now find the leftmost node in its right subtree."
        )
    if tag is OperationTag.REPLACE_WITH_CHILD:
        return f"Replace Node {args[0]} with its one child node."
    if tag is OperationTag.REMOVE_LEAF:
        return f"Node {args[0]} can simply be removed because it has no children."
    if tag is OperationTag.SEARCH_MINIMUM:
        return f"Visit Node {args[0]} on the way to the minimum."
    if tag is OperationTag.SWAP_VALUES:
        return (
            f"Set node with value {args[0]} to {args[1]}. "
            "Continue tree traversal to delete the duplicate value."
        )
    if tag is OperationTag.MATCH_FOR_DELETE:
        return f"Node {args[0]} found, remove it from the tree."
    if tag is OperationTag.BALANCE_OK:
        return f"Check balance of tree rooted at Node {args[0]}: it is balanced."
    if tag is OperationTag.BALANCE_VIOLATION:
        return (
            f"Check balance of tree rooted at Node {args[0]}: "
            "rebalancing required."
        )
    if tag is OperationTag.ROTATE_LEFT:
        return f"Perform a left rotation at Node {args[0]}."
    if tag is OperationTag.ROTATE_RIGHT:
        return f"Perform a right rotation at Node {args[0]}."
    if tag is OperationTag.BEGIN_FIXUP:
        return f"Now fix any tree violations starting with Node {args[0]}."
    if tag is OperationTag.ROOT_RECOLOR_TERMINAL:
        return f"Node {args[0].key} is the root, set colour to black."
    if tag is OperationTag.PARENT_BLACK_ROOT_RECOLOR:
        return (
            f"Parent of Node {args[0]} is black, "
            "last step is to change root to black."
        )
    if tag is OperationTag.PARENT_BLACK_TERMINAL:
        return (
            f"Parent of Node {args[0]} is black, "
            "no further fixing is required."
        )
    if tag is OperationTag.RECOLOR_GRANDPARENT_CASE:
        return (
            f"Set Node {args[0].key} to black, its uncle to black, "
            "and its grandparent to red."
        )
    if tag is OperationTag.RECOLOR_GRANDPARENT:
        return f"Set grandparent Node {args[0].key} to red."
    if tag is OperationTag.RECOLOR_PARENT_GRANDPARENT:
        return (
            f"Set parent Node {args[0].key} to black "
            f"and grandparent Node {args[1].key} to red."
        )
    if tag is OperationTag.ADVANCE_FIXUP_POINTER:
        return (
            f"Set Node {args[0]} as the new child ({args[1]}) "
            "and fix any violations."
        )
    if tag is OperationTag.FORMER_POSITION_NOTE:
        where = (
            f"(null child of Node {args[1]})" if args[1] is not None
            else "(former tree root)"
        )
        return (
            "Fix violations, starting from the former position of "
            f"Node {args[0]} {where}."
        )
    if tag is OperationTag.RECOLOR_NODE:
        return f"No double black violation. Set Node {args[0].key} to black."
    if tag is OperationTag.NO_VIOLATION:
        return "Tree has no violations as is, no fix required."
    if tag is OperationTag.RECOLOR_SIBLING_ROTATE_CASE:
        return (
            f"Set parent Node {args[0].key} to red "
            f"and sibling Node {args[1].key} to black."
        )
    if tag is OperationTag.SIBLING_RECOLOR:
        return f"Set sibling Node {args[0].key} to red."
    if tag is OperationTag.FINAL_BLACKEN:
        which = "(the root) " if args[1] else ""
        return f"Tree is almost balanced, just set Node {args[0].key} {which}to black."
    if tag is OperationTag.SIBLING_NEPHEW_RECOLOR:
        return f"Set sibling Node {args[0].key} to red and its child to black."
    if tag is OperationTag.DOUBLE_BLACK_RECOLOR_ROTATE:
        sibling, parent, _, side = args
        child_text = f", its {side} child to black," if side is not None else ""
        return (
            f"Set sibling Node {sibling.key} to {_color_word(sibling)}"
            f"{child_text} and parent Node {parent.key} to black."
        )
    if tag is OperationTag.END_OF_SEQUENCE:
        return str(args[0])

    raise TraceReplayError(f"no caption for {tag.value}")


# =============================================================================
# Explanation
# =============================================================================

@dataclass(frozen=True)
class TraceExplanation:
    """Human-readable explanation of a trace."""
    summary: str
    action_count: int
    rotation_count: int
    recolor_count: int
    final_keys: Optional[Tuple[Any, ...]]
    steps: Tuple[str, ...]

    def to_text(self) -> str:
        """Format as plain text."""
        lines = [self.summary, ""]
        lines.append(f"Total actions: {self.action_count}")
        lines.append(f"Rotations: {self.rotation_count}")
        lines.append(f"Colour changes: {self.recolor_count}")
        if self.final_keys is not None:
            lines.append(f"Keys afterwards: {', '.join(str(k) for k in self.final_keys)}")
        lines.append("")
        lines.append("Steps:")
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "summary": self.summary,
            "action_count": self.action_count,
            "rotation_count": self.rotation_count,
            "recolor_count": self.recolor_count,
            "final_keys": list(self.final_keys) if self.final_keys is not None else None,
            "steps": list(self.steps),
        }


def explain(trace: ActionTrace) -> TraceExplanation:
    """Summarise a trace and caption every step in replay order."""
    steps = tuple(
        describe(action, trace.variant) for action in TracePlayer(trace)
    )
    snapshot = trace.final_snapshot()
    return TraceExplanation(
        summary=(
            f"{trace.variant.display_name}: {trace.operation.value} {trace.key!r}"
        ),
        action_count=len(trace),
        rotation_count=sum(1 for tag in trace.tags if tag in ROTATION_TAGS),
        recolor_count=sum(len(action.color_changes) for action in trace),
        final_keys=tuple(snapshot.keys()) if snapshot is not None else None,
        steps=steps,
    )


# =============================================================================
# Determinism
# =============================================================================

@dataclass(frozen=True)
class DeterminismCheck:
    """Result of determinism verification."""
    is_deterministic: bool
    trace_hash: str
    expected_hash: Optional[str]
    differences: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "is_deterministic": self.is_deterministic,
            "trace_hash": self.trace_hash,
            "expected_hash": self.expected_hash,
            "differences": list(self.differences),
        }


def verify_determinism(
    trace: ActionTrace,
    expected_hash: Optional[str] = None,
) -> DeterminismCheck:
    """
    Check that a trace hashes the same after a serialization round trip,
    and optionally that it matches a previously recorded hash.
    """
    differences = []

    reloaded = ActionTrace.from_json(trace.to_json())
    if reloaded.trace_id != trace.trace_id:
        differences.append(
            f"Round trip changed hash: {trace.trace_id} -> {reloaded.trace_id}"
        )

    if expected_hash is not None and expected_hash != trace.trace_id:
        differences.append(
            f"Hash mismatch: expected {expected_hash}, got {trace.trace_id}"
        )

    return DeterminismCheck(
        is_deterministic=not differences,
        trace_hash=trace.trace_id,
        expected_hash=expected_hash,
        differences=tuple(differences),
    )


# =============================================================================
# Loading
# =============================================================================

def load_trace(path: Union[str, Path]) -> ActionTrace:
    """
    Load a trace written with ActionTrace.to_json().

    Raises:
        TraceLoadError: If the file is missing or not a valid trace
    """
    path = Path(path)
    source = str(path)

    if not path.exists():
        raise TraceLoadError(f"File not found: {path}", source=source)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (IOError, json.JSONDecodeError) as e:
        raise TraceLoadError(str(e), source=source)

    try:
        return ActionTrace.from_dict(data)
    except TraceValidationError as e:
        raise TraceLoadError(e.message, source=source)
