"""
nodes.py

Node model shared by the three tree engines.

- PlainNode: key + children (unbalanced BST)
- AvlNode: adds a cached subtree height
- RedBlackNode: adds a color and a weak back-reference to the parent

The three node classes deliberately share no base class. Code that works
on any of them relies only on the common shape (key, left, right), and on
the capability helpers at the bottom of this module.
"""

import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from treetrace.recorder import TraceRecorder


# =============================================================================
# Enums
# =============================================================================

class Variant(Enum):
    """Tree variant tag; selects the engine at construction."""
    BST = "bst"
    AVL = "avl"
    RED_BLACK = "red-black"

    @property
    def display_name(self) -> str:
        """Human-readable tree name."""
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Any) -> "Variant":
        """
        Resolve a Variant from an instance, value, or member name.

        Raises:
            UnknownVariantError: If nothing matches
        """
        from treetrace.errors import UnknownVariantError

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower().replace("_", "-")
            for variant in cls:
                if text in (variant.value, variant.name.lower().replace("_", "-")):
                    return variant
        raise UnknownVariantError(value, [v.value for v in cls])


_DISPLAY_NAMES = {
    Variant.BST: "BST",
    Variant.AVL: "AVL Tree",
    Variant.RED_BLACK: "Red-Black Tree",
}


class Color(Enum):
    """Red-Black node color."""
    BLACK = "black"
    RED = "red"


# =============================================================================
# Nodes
# =============================================================================

@dataclass(eq=False)
class PlainNode:
    """Node of an unbalanced binary search tree."""
    key: Any
    left: Optional["PlainNode"] = None
    right: Optional["PlainNode"] = None


@dataclass(eq=False)
class AvlNode:
    """AVL node; height is 1 for a leaf and is kept up to date by the engine."""
    key: Any
    left: Optional["AvlNode"] = None
    right: Optional["AvlNode"] = None
    height: int = 1


@dataclass(eq=False)
class RedBlackNode:
    """
    Red-Black node.

    The parent relation is held through a weak reference: children own
    nothing upward, so the tree stays a plain ownership hierarchy and the
    parent is only used for upward walks during fixups and rotations.
    """
    key: Any
    left: Optional["RedBlackNode"] = None
    right: Optional["RedBlackNode"] = None
    color: Color = Color.RED
    _parent_ref: Optional["weakref.ReferenceType[RedBlackNode]"] = field(
        default=None, repr=False, compare=False,
    )

    @property
    def parent(self) -> Optional["RedBlackNode"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, node: Optional["RedBlackNode"]) -> None:
        self._parent_ref = weakref.ref(node) if node is not None else None

    @property
    def is_red(self) -> bool:
        return self.color is Color.RED


def is_black(node: Optional[RedBlackNode]) -> bool:
    """Null leaves count as black."""
    return node is None or node.color is Color.BLACK


# =============================================================================
# Capability helpers (work on every node variant)
# =============================================================================

def height(node: Any) -> int:
    """Height of a subtree, computed by walking it (0 for an empty tree)."""
    if node is None:
        return 0
    return max(height(node.left), height(node.right)) + 1


def minimum(node: Any, recorder: Optional["TraceRecorder"] = None) -> Any:
    """
    Return the smallest key of a non-empty subtree.

    When a recorder is given, every node visited on the way down is
    reported as a search-minimum step.
    """
    from treetrace.actions import OperationTag

    key = node.key
    if recorder is not None:
        recorder.emit(OperationTag.SEARCH_MINIMUM, key)

    while node.left is not None:
        node = node.left
        key = node.key
        if recorder is not None:
            recorder.emit(OperationTag.SEARCH_MINIMUM, key)

    return key


def find(node: Any, key: Any) -> bool:
    """True if the key is stored in the subtree."""
    while node is not None:
        if key < node.key:
            node = node.left
        elif key > node.key:
            node = node.right
        else:
            return True
    return False


def in_order(node: Any) -> Iterator[Any]:
    """Yield keys in ascending order."""
    stack = []
    current = node
    while stack or current is not None:
        while current is not None:
            stack.append(current)
            current = current.left
        current = stack.pop()
        yield current.key
        current = current.right


def count(node: Any) -> int:
    """Number of nodes in a subtree."""
    if node is None:
        return 0
    return count(node.left) + count(node.right) + 1
