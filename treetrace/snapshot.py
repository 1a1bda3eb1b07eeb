"""
snapshot.py

Acyclic, immutable copies of a tree.

A snapshot lets an Action refer to "the tree as it looked at this step"
without aliasing the live nodes that later steps keep mutating. Snapshots
never contain parent links; AVL snapshots carry heights and Red-Black
snapshots carry colors.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from treetrace.nodes import AvlNode, Color, RedBlackNode, Variant


@dataclass(frozen=True)
class SnapshotNode:
    """One node of a snapshot."""
    key: Any
    left: Optional["SnapshotNode"] = None
    right: Optional["SnapshotNode"] = None
    height: Optional[int] = None
    color: Optional[Color] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: Dict[str, Any] = {
            "key": self.key,
            "left": self.left.to_dict() if self.left is not None else None,
            "right": self.right.to_dict() if self.right is not None else None,
        }
        if self.height is not None:
            result["height"] = self.height
        if self.color is not None:
            result["color"] = self.color.value
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["SnapshotNode"]:
        """Reconstruct from dictionary (None for an empty subtree)."""
        if data is None:
            return None
        color = data.get("color")
        return cls(
            key=data["key"],
            left=cls.from_dict(data.get("left")),
            right=cls.from_dict(data.get("right")),
            height=data.get("height"),
            color=Color(color) if color is not None else None,
        )


@dataclass(frozen=True)
class TreeSnapshot:
    """Frozen copy of a whole tree."""
    variant: Variant
    root: Optional[SnapshotNode]

    @property
    def is_empty(self) -> bool:
        return self.root is None

    def keys(self) -> Iterator[Any]:
        """Yield keys in ascending order."""
        def walk(node):
            if node is None:
                return
            yield from walk(node.left)
            yield node.key
            yield from walk(node.right)
        return walk(self.root)

    def height(self) -> int:
        def walk(node):
            if node is None:
                return 0
            return max(walk(node.left), walk(node.right)) + 1
        return walk(self.root)

    def get(self, key: Any) -> Optional[SnapshotNode]:
        """Return the snapshot node holding key, or None."""
        node = self.root
        while node is not None:
            if key < node.key:
                node = node.left
            elif key > node.key:
                node = node.right
            else:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "root": self.root.to_dict() if self.root is not None else None,
            "variant": self.variant.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TreeSnapshot":
        """Reconstruct from dictionary."""
        return cls(
            variant=Variant(data["variant"]),
            root=SnapshotNode.from_dict(data.get("root")),
        )


def _copy(node: Any) -> Optional[SnapshotNode]:
    if node is None:
        return None
    return SnapshotNode(
        key=node.key,
        left=_copy(node.left),
        right=_copy(node.right),
        height=node.height if isinstance(node, AvlNode) else None,
        color=node.color if isinstance(node, RedBlackNode) else None,
    )


def take_snapshot(root: Any, variant: Variant) -> TreeSnapshot:
    """Copy the tree rooted at root; parent links are never followed."""
    return TreeSnapshot(variant=variant, root=_copy(root))
