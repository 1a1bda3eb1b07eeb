"""
tree.py

treetrace Tree facade.

Tree(variant) picks one of the three engines by its Variant tag and
guards every call with the caller-contract checks the engines leave out:
no duplicate inserts, no deletes of absent keys. Rejections are logged
and raised before the engine touches anything, so a rejected call never
changes the tree.

Example:
    tree = Tree("avl")
    tree.insert(10)
    tree.insert(20)
    trace = tree.insert(30)      # rotates left at 10
    print(trace)
"""

import logging
import random
from typing import Any, Dict, Iterator, Optional, Protocol, Tuple, Type, Union

from treetrace import nodes
from treetrace.actions import KEY_TYPES, ActionTrace
from treetrace.avl import AvlEngine
from treetrace.bst import BstEngine
from treetrace.config import TreeConfig
from treetrace.errors import (
    DuplicateKeyError,
    EmptyTreeError,
    InvalidTreeSizeError,
    KeyNotFoundError,
    UnsupportedKeyError,
)
from treetrace.invariants import validate
from treetrace.nodes import Variant
from treetrace.red_black import RedBlackEngine
from treetrace.snapshot import TreeSnapshot, take_snapshot

logger = logging.getLogger(__name__)


class TreeEngine(Protocol):
    """What Tree needs from an engine."""

    variant: Variant
    root: Any

    def insert(self, key: Any) -> ActionTrace: ...

    def delete(self, key: Any) -> ActionTrace: ...

    def find(self, key: Any) -> bool: ...

    def clear(self) -> None: ...


ENGINES: Dict[Variant, Type[Any]] = {
    Variant.BST: BstEngine,
    Variant.AVL: AvlEngine,
    Variant.RED_BLACK: RedBlackEngine,
}


# =============================================================================
# Tree
# =============================================================================

class Tree:
    """
    A search tree of one variant that explains every change it makes.

    Args:
        variant: Variant, or its name ("bst", "avl", "red-black")
        config: Completion messages and other tunables

    Raises:
        UnknownVariantError: If variant cannot be resolved
    """

    def __init__(
        self,
        variant: Union[Variant, str] = Variant.BST,
        *,
        config: Optional[TreeConfig] = None,
    ):
        self._variant = Variant.parse(variant)
        self._config = config or TreeConfig()
        self._engine: TreeEngine = ENGINES[self._variant](self._config)
        self._size = 0

    @property
    def variant(self) -> Variant:
        return self._variant

    @property
    def config(self) -> TreeConfig:
        return self._config

    @property
    def root(self) -> Any:
        """Root node of the live tree (None when empty)."""
        return self._engine.root

    @property
    def is_empty(self) -> bool:
        return self._engine.root is None

    # =========================================================================
    # Mutating operations
    # =========================================================================

    def insert(self, key: Any) -> ActionTrace:
        """
        Insert a key and explain how it was placed.

        Keys must be int, float or str and mutually comparable.

        Raises:
            UnsupportedKeyError: If the key is not an int, float or str
            DuplicateKeyError: If the key is already stored
        """
        self._check_key(key, "insert")
        if self._engine.find(key):
            logger.info("rejected insert of %r: already in %s", key, self._variant.value)
            raise DuplicateKeyError(key, self._variant.display_name)

        trace = self._engine.insert(key)
        self._size += 1
        logger.debug("%s insert %r: %d actions", self._variant.value, key, len(trace))
        return trace

    def delete(self, key: Any) -> ActionTrace:
        """
        Delete a key and explain how the tree was repaired.

        Raises:
            UnsupportedKeyError: If the key is not an int, float or str
            KeyNotFoundError: If the key is not stored
        """
        self._check_key(key, "delete")
        if not self._engine.find(key):
            logger.info("rejected delete of %r: not in %s", key, self._variant.value)
            raise KeyNotFoundError(key, self._variant.display_name)

        trace = self._engine.delete(key)
        self._size -= 1
        logger.debug("%s delete %r: %d actions", self._variant.value, key, len(trace))
        return trace

    def _check_key(self, key: Any, operation: str) -> None:
        if not isinstance(key, KEY_TYPES):
            logger.info("rejected %s of %r: unsupported key type %s", operation, key, type(key).__name__)
            raise UnsupportedKeyError(key)

    def clear(self) -> None:
        self._engine.clear()
        self._size = 0

    # =========================================================================
    # Queries
    # =========================================================================

    def find(self, key: Any) -> bool:
        return self._engine.find(key)

    def minimum(self) -> Any:
        """
        Smallest stored key.

        Raises:
            EmptyTreeError: If the tree holds no keys
        """
        return minimum(self._engine.root)

    def height(self) -> int:
        return nodes.height(self._engine.root)

    def keys(self) -> Tuple[Any, ...]:
        """All keys in ascending order."""
        return tuple(nodes.in_order(self._engine.root))

    def snapshot(self) -> TreeSnapshot:
        return take_snapshot(self._engine.root, self._variant)

    def validate(self) -> None:
        """
        Check every structural property of this variant.

        Raises:
            InvariantViolationError: If any property is broken
        """
        validate(self._engine.root, self._variant)

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: Any) -> bool:
        return self._engine.find(key)

    def __iter__(self) -> Iterator[Any]:
        return nodes.in_order(self._engine.root)

    def __repr__(self) -> str:
        return f"Tree({self._variant.value!r}, size={self._size})"


# =============================================================================
# Module-level operations
# =============================================================================

def create_tree(
    variant: Union[Variant, str] = Variant.BST,
    *,
    config: Optional[TreeConfig] = None,
) -> Tree:
    return Tree(variant, config=config)


def insert(tree: Tree, key: Any) -> ActionTrace:
    return tree.insert(key)


def delete(tree: Tree, key: Any) -> ActionTrace:
    return tree.delete(key)


def find(tree: Tree, key: Any) -> bool:
    return tree.find(key)


def minimum(subtree: Any) -> Any:
    """
    Smallest key of a subtree given by its root node.

    Raises:
        EmptyTreeError: If subtree is None
    """
    if subtree is None:
        raise EmptyTreeError("find the minimum")
    return nodes.minimum(subtree)


def height(subtree: Any) -> int:
    """Height of a subtree given by its root node (0 when empty)."""
    return nodes.height(subtree)


def generate_random_tree(
    variant: Union[Variant, str],
    count: int,
    rng: Optional[random.Random] = None,
    config: Optional[TreeConfig] = None,
) -> Tuple[Tree, ActionTrace]:
    """
    Build a tree of count spread-out keys inserted in random order.

    Key i (1-based) is i * key_step plus a jitter in
    [-key_jitter, key_jitter], so keys never collide.

    Returns:
        The tree, and a single create-new-tree trace for the whole build

    Raises:
        InvalidTreeSizeError: If count is not in [1, max_random_nodes]
    """
    config = config or TreeConfig()
    if (
        isinstance(count, bool)
        or not isinstance(count, int)
        or not 1 <= count <= config.max_random_nodes
    ):
        raise InvalidTreeSizeError(count, 1, config.max_random_nodes)

    rng = rng or random.Random()
    jitter = config.random_key_jitter
    keys = [
        i * config.random_key_step + rng.randint(-jitter, jitter)
        for i in range(1, count + 1)
    ]
    rng.shuffle(keys)

    tree = Tree(variant, config=config)
    for key in keys:
        tree.insert(key)

    logger.debug("random %s tree with %d keys", tree.variant.value, count)
    return tree, ActionTrace.created(tree.variant, tree.root.key)
