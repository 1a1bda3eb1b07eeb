"""
invariants.py

Structural checks for every tree variant.

Each checker walks a live tree and returns a list of problems (empty when
the tree is sound). validate() raises InvariantViolationError on the first
problem instead. The checks are used by the test-suite after every call
and by Tree.validate().
"""

from typing import Any, List, Optional, Tuple

from treetrace.errors import InvariantViolationError
from treetrace.nodes import AvlNode, Color, RedBlackNode, Variant, in_order


def check_bst(root: Any) -> List[str]:
    """In-order traversal must be strictly increasing."""
    problems = []
    previous = None
    for index, key in enumerate(in_order(root)):
        if index > 0 and not previous < key:
            problems.append(f"keys out of order: {previous!r} before {key!r}")
        previous = key
    return problems


def check_avl(root: Optional[AvlNode]) -> List[str]:
    """Ordering, cached heights, and |balance| <= 1 at every node."""
    problems = check_bst(root)

    def walk(node: Optional[AvlNode]) -> int:
        if node is None:
            return 0
        left = walk(node.left)
        right = walk(node.right)
        actual = max(left, right) + 1
        if node.height != actual:
            problems.append(
                f"node {node.key!r} caches height {node.height}, actual {actual}"
            )
        if abs(left - right) > 1:
            problems.append(f"node {node.key!r} has balance {left - right}")
        return actual

    walk(root)
    return problems


def check_red_black(root: Optional[RedBlackNode]) -> List[str]:
    """Ordering, black root, no red-red edge, equal black height, parent links."""
    problems = check_bst(root)
    if root is None:
        return problems

    if root.color is not Color.BLACK:
        problems.append(f"root {root.key!r} is red")
    if root.parent is not None:
        problems.append(f"root {root.key!r} has a parent")

    def walk(node: Optional[RedBlackNode]) -> int:
        if node is None:
            return 1
        for child in (node.left, node.right):
            if child is None:
                continue
            if child.parent is not node:
                problems.append(f"node {child.key!r} does not point back to {node.key!r}")
            if node.is_red and child.is_red:
                problems.append(f"red node {node.key!r} has red child {child.key!r}")
        left = walk(node.left)
        right = walk(node.right)
        if left != right:
            problems.append(
                f"node {node.key!r} has black heights {left} and {right}"
            )
        return max(left, right) + (0 if node.is_red else 1)

    walk(root)
    return problems


_CHECKERS = {
    Variant.BST: check_bst,
    Variant.AVL: check_avl,
    Variant.RED_BLACK: check_red_black,
}


def find_problems(root: Any, variant: Variant) -> Tuple[str, ...]:
    return tuple(_CHECKERS[variant](root))


def validate(root: Any, variant: Variant) -> None:
    """
    Raise if the tree breaks any property of its variant.

    Raises:
        InvariantViolationError: With the first problem found
    """
    problems = find_problems(root, variant)
    if problems:
        raise InvariantViolationError(
            f"{variant.display_name} is invalid: {problems[0]}"
        )
