"""
actions.py

treetrace Action Trace primitive.

An ActionTrace is the immutable, ordered record of every decision one
insert or delete call made. It exists to answer: "Why did the tree change
shape like this?"

Design Invariants:
- Closed set of operation tags
- Payloads hold plain values, ColorChange pairs and TreeSnapshots only
  (never live nodes)
- Immutable after creation
- Deterministic serialization (sorted keys, content-based hash)
- Chronological order is the exposed order; the pop-ordered playback
  stack is its exact reverse
"""

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from treetrace.nodes import Color, Variant
from treetrace.snapshot import TreeSnapshot

# =============================================================================
# Trace Errors
# =============================================================================

class TraceValidationError(Exception):
    """
    Raised when an Action or ActionTrace cannot be constructed.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: str = "T000",
    ):
        self.message = message
        self.error_code = error_code
        super().__init__(self.format())

    def format(self) -> str:
        """Format as human-readable error message."""
        return f"[{self.error_code}] Trace validation failed: {self.message}"


class InvalidActionError(TraceValidationError):
    """Raised when an Action has an invalid tag or payload."""

    def __init__(self, message: str, index: Optional[int] = None):
        location = f" at index {index}" if index is not None else ""
        super().__init__(
            message=f"Invalid action{location}: {message}",
            error_code="T001",
        )
        self.index = index


class TraceImmutabilityError(Exception):
    """Raised when attempting to mutate an immutable ActionTrace."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Cannot {operation}: ActionTrace is immutable after creation"
        )


# =============================================================================
# Tags
# =============================================================================

class OperationTag(Enum):
    """Closed enumeration of everything an engine can report."""
    CREATE_TREE = "create-new-tree"
    APPEND_LEFT = "append-left"
    APPEND_RIGHT = "append-right"
    DESCEND_LEFT = "descend-left"
    DESCEND_RIGHT = "descend-right"
    RESIZE = "resize"
    MATCH_FOR_SUCCESSOR = "match-for-successor"
    REPLACE_WITH_CHILD = "replace-with-child"
    REMOVE_LEAF = "remove-leaf"
    SEARCH_MINIMUM = "search-minimum"
    SWAP_VALUES = "swap-values"
    MATCH_FOR_DELETE = "match-for-delete"
    BALANCE_OK = "balance-ok"
    BALANCE_VIOLATION = "balance-violation"
    ROTATE_LEFT = "rotate-left"
    ROTATE_RIGHT = "rotate-right"
    BEGIN_FIXUP = "begin-fixup"
    ROOT_RECOLOR_TERMINAL = "root-recolor-terminal"
    PARENT_BLACK_ROOT_RECOLOR = "parent-black-root-recolor"
    PARENT_BLACK_TERMINAL = "parent-black-terminal"
    RECOLOR_GRANDPARENT_CASE = "recolor-grandparent-case"
    RECOLOR_GRANDPARENT = "recolor-grandparent"
    RECOLOR_PARENT_GRANDPARENT = "recolor-parent-grandparent"
    ADVANCE_FIXUP_POINTER = "advance-fixup-pointer"
    FORMER_POSITION_NOTE = "former-position-note"
    RECOLOR_NODE = "recolor-node"
    NO_VIOLATION = "no-violation"
    RECOLOR_SIBLING_ROTATE_CASE = "recolor-sibling-rotate-case"
    SIBLING_RECOLOR = "sibling-recolor"
    FINAL_BLACKEN = "final-blacken"
    SIBLING_NEPHEW_RECOLOR = "sibling-nephew-recolor"
    DOUBLE_BLACK_RECOLOR_ROTATE = "double-black-recolor-rotate"
    END_OF_SEQUENCE = "end-of-sequence"


ROTATION_TAGS = frozenset({OperationTag.ROTATE_LEFT, OperationTag.ROTATE_RIGHT})


class Operation(Enum):
    """Which call produced a trace."""
    INSERT = "insert"
    DELETE = "delete"
    CREATE = "create"


# =============================================================================
# Payload values
# =============================================================================

@dataclass(frozen=True)
class ColorChange:
    """The color a node was set to at one step."""
    key: Any
    color: Color

    def to_dict(self) -> Dict[str, Any]:
        return {"color": self.color.value, "key": self.key, "type": "color_change"}


def _encode(value: Any) -> Any:
    if isinstance(value, ColorChange):
        return value.to_dict()
    if isinstance(value, TreeSnapshot):
        return {"snapshot": value.to_dict(), "type": "snapshot"}
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        kind = value.get("type")
        if kind == "color_change":
            return ColorChange(key=value["key"], color=Color(value["color"]))
        if kind == "snapshot":
            return TreeSnapshot.from_dict(value["snapshot"])
        raise InvalidActionError(f"unknown payload object type {kind!r}")
    return value


_PAYLOAD_SCALARS = (int, float, str, bool, type(None))

# Types a tree key may have; every one of them is a payload scalar.
KEY_TYPES = (int, float, str)


# =============================================================================
# Action
# =============================================================================

@dataclass(frozen=True)
class Action:
    """
    One tagged event of a trace.

    Example:
        Action(OperationTag.DESCEND_LEFT, (5, 10))
    """
    tag: OperationTag
    payload: Tuple[Any, ...] = ()

    def __post_init__(self):
        if not isinstance(self.tag, OperationTag):
            raise InvalidActionError(
                f"tag must be OperationTag, got {type(self.tag).__name__}"
            )
        if not isinstance(self.payload, tuple):
            raise InvalidActionError(
                f"payload must be tuple, got {type(self.payload).__name__}"
            )
        for item in self.payload:
            if not isinstance(item, _PAYLOAD_SCALARS + (ColorChange, TreeSnapshot)):
                raise InvalidActionError(
                    f"payload item of type {type(item).__name__} is not allowed "
                    f"in {self.tag.value}"
                )

    @property
    def snapshot(self) -> Optional[TreeSnapshot]:
        """The tree snapshot carried by this action, if any."""
        for item in self.payload:
            if isinstance(item, TreeSnapshot):
                return item
        return None

    @property
    def color_changes(self) -> Tuple[ColorChange, ...]:
        return tuple(item for item in self.payload if isinstance(item, ColorChange))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "payload": [_encode(item) for item in self.payload],
            "tag": self.tag.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """Reconstruct from dictionary."""
        try:
            tag = OperationTag(data["tag"])
        except (KeyError, ValueError) as e:
            raise InvalidActionError(f"bad tag: {e}")
        return cls(tag=tag, payload=tuple(_decode(item) for item in data.get("payload", [])))

    def __str__(self) -> str:
        args = ", ".join(
            "<snapshot>" if isinstance(item, TreeSnapshot) else repr(item)
            for item in self.payload
        )
        return f"{self.tag.value}({args})"


# =============================================================================
# ActionTrace: immutable record of one insert/delete call
# =============================================================================

class ActionTrace:
    """
    Immutable, chronologically ordered record of one engine call.

    Build it from a playback stack (the once-reversed emission list) with
    ActionTrace.from_stack(), or from chronological actions directly.

    Example:
        trace = tree.insert(30)
        for action in trace:
            print(action)

        stack = trace.to_stack()   # pop() yields actions in replay order
    """

    __slots__ = ('_variant', '_operation', '_key', '_actions', '_trace_id', '_frozen')

    def __init__(
        self,
        variant: Variant,
        operation: Operation,
        key: Any,
        actions: Tuple[Action, ...],
    ):
        object.__setattr__(self, '_frozen', False)

        if not isinstance(variant, Variant):
            raise TraceValidationError(
                f"variant must be Variant, got {type(variant).__name__}",
                error_code="T002",
            )
        if not isinstance(operation, Operation):
            raise TraceValidationError(
                f"operation must be Operation, got {type(operation).__name__}",
                error_code="T002",
            )
        if not isinstance(actions, tuple):
            raise TraceValidationError(
                f"actions must be tuple, got {type(actions).__name__}",
                error_code="T003",
            )
        for i, action in enumerate(actions):
            if not isinstance(action, Action):
                raise InvalidActionError(
                    f"expected Action, got {type(action).__name__}", index=i,
                )

        self._variant = variant
        self._operation = operation
        self._key = key
        self._actions = actions
        self._trace_id = self._compute_trace_id()

        object.__setattr__(self, '_frozen', True)

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent mutation after construction."""
        if getattr(self, '_frozen', False):
            raise TraceImmutabilityError(f"set attribute '{name}'")
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        """Prevent deletion of attributes."""
        raise TraceImmutabilityError(f"delete attribute '{name}'")

    # =========================================================================
    # Factory Methods
    # =========================================================================

    @classmethod
    def from_stack(
        cls,
        stack: Sequence[Action],
        *,
        variant: Variant,
        operation: Operation,
        key: Any,
    ) -> "ActionTrace":
        """
        Build a trace from a playback stack whose last element plays first.
        """
        return cls(variant, operation, key, tuple(reversed(stack)))

    @classmethod
    def created(cls, variant: Variant, key: Any) -> "ActionTrace":
        """The one-action trace reported when a tree is first created."""
        return cls(
            variant,
            Operation.CREATE,
            key,
            (Action(OperationTag.CREATE_TREE, (key,)),),
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def variant(self) -> Variant:
        return self._variant

    @property
    def operation(self) -> Operation:
        return self._operation

    @property
    def key(self) -> Any:
        return self._key

    @property
    def actions(self) -> Tuple[Action, ...]:
        """Actions in chronological replay order."""
        return self._actions

    @property
    def trace_id(self) -> str:
        """
        Deterministic content-based hash of this trace.

        Same variant + operation + key + actions = identical trace_id
        """
        return self._trace_id

    @property
    def tags(self) -> Tuple[OperationTag, ...]:
        return tuple(action.tag for action in self._actions)

    # =========================================================================
    # Length and Iteration
    # =========================================================================

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self._actions)

    def __getitem__(self, index: int) -> Action:
        return self._actions[index]

    def __bool__(self) -> bool:
        return len(self._actions) > 0

    def to_stack(self) -> List[Action]:
        """Fresh playback stack: pop() returns the next action to replay."""
        return list(reversed(self._actions))

    def first(self) -> Optional[Action]:
        return self._actions[0] if self._actions else None

    def last(self) -> Optional[Action]:
        return self._actions[-1] if self._actions else None

    def find_all(self, tag: OperationTag) -> Tuple[Action, ...]:
        """All actions with the given tag, in order."""
        return tuple(action for action in self._actions if action.tag is tag)

    def count(self, tag: OperationTag) -> int:
        return len(self.find_all(tag))

    def final_snapshot(self) -> Optional[TreeSnapshot]:
        """The most recent snapshot carried by any action."""
        for action in reversed(self._actions):
            snapshot = action.snapshot
            if snapshot is not None:
                return snapshot
        return None

    # =========================================================================
    # Trace ID Computation
    # =========================================================================

    def _content(self) -> Dict[str, Any]:
        return {
            "actions": [action.to_dict() for action in self._actions],
            "key": self._key,
            "operation": self._operation.value,
            "variant": self._variant.value,
        }

    def _compute_trace_id(self) -> str:
        """SHA-256 of the canonical JSON of the content."""
        json_str = json.dumps(self._content(), sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(json_str.encode('utf-8')).hexdigest()

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (keys sorted)."""
        result = self._content()
        result["trace_id"] = self._trace_id
        return dict(sorted(result.items()))

    def to_json(self, *, indent: Optional[int] = None) -> str:
        """
        Serialize to JSON string.

        Identical traces produce identical JSON.
        """
        return json.dumps(
            self.to_dict(),
            sort_keys=True,
            ensure_ascii=False,
            indent=indent,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionTrace":
        """Reconstruct a trace from a dictionary."""
        try:
            variant = Variant(data["variant"])
            operation = Operation(data["operation"])
        except (KeyError, ValueError) as e:
            raise TraceValidationError(f"bad trace header: {e}", error_code="T002")

        actions = []
        for i, item in enumerate(data.get("actions", [])):
            try:
                actions.append(Action.from_dict(item))
            except InvalidActionError as e:
                raise InvalidActionError(e.message, index=i)

        return cls(variant, operation, data.get("key"), tuple(actions))

    @classmethod
    def from_json(cls, json_str: str) -> "ActionTrace":
        return cls.from_dict(json.loads(json_str))

    # =========================================================================
    # Equality and Hashing
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActionTrace):
            return NotImplemented
        return self._trace_id == other._trace_id

    def __hash__(self) -> int:
        return hash(self._trace_id)

    # =========================================================================
    # String Representations
    # =========================================================================

    def __repr__(self) -> str:
        return (
            f"ActionTrace({self._variant.value} {self._operation.value} {self._key!r}, "
            f"len={len(self)}, id={self._trace_id[:12]}...)"
        )

    def __str__(self) -> str:
        lines = [
            f"ActionTrace ({self._variant.display_name}, "
            f"{self._operation.value} {self._key!r}, {len(self)} actions):"
        ]
        for i, action in enumerate(self._actions):
            lines.append(f"  {i+1}. {action}")
        return "\n".join(lines)
