"""
test_tree.py

Tests for the Tree facade, the module-level operations and random trees.

Tests prove:
- Preconditions are rejected before any change
- Every variant stays valid through long random operation sequences
- Every trace replays in stack order and ends with end-of-sequence
- Random trees have the requested size and spread-out keys
"""

import datetime
import random
from decimal import Decimal

import pytest

from treetrace import tree as tree_module
from treetrace.actions import Operation, OperationTag
from treetrace.config import TreeConfig
from treetrace.errors import (
    DuplicateKeyError,
    EmptyTreeError,
    InvalidTreeSizeError,
    KeyNotFoundError,
    UnknownVariantError,
    UnsupportedKeyError,
)
from treetrace.nodes import Variant
from treetrace.tree import Tree, generate_random_tree

ALL_VARIANTS = [Variant.BST, Variant.AVL, Variant.RED_BLACK]


# =============================================================================
# SECTION 1: Facade
# =============================================================================

class TestConstruction:
    """Variant selection."""

    @pytest.mark.parametrize("name,variant", [
        ("bst", Variant.BST),
        ("avl", Variant.AVL),
        ("red-black", Variant.RED_BLACK),
    ])
    def test_variant_by_name(self, name, variant):
        assert Tree(name).variant is variant

    def test_default_is_bst(self):
        assert Tree().variant is Variant.BST

    def test_unknown_variant(self):
        with pytest.raises(UnknownVariantError):
            Tree("b-tree")

    def test_create_tree(self):
        assert tree_module.create_tree("avl").variant is Variant.AVL


@pytest.mark.parametrize("variant", ALL_VARIANTS)
class TestPreconditions:
    """Rejected calls leave the tree untouched."""

    def test_duplicate_insert(self, variant):
        tree = Tree(variant)
        tree.insert(10)
        tree.insert(20)
        before = tree.snapshot()
        with pytest.raises(DuplicateKeyError) as exc_info:
            tree.insert(20)
        assert exc_info.value.error_code == "B001"
        assert exc_info.value.key == 20
        assert tree.snapshot() == before
        assert len(tree) == 2

    def test_delete_missing_key(self, variant):
        tree = Tree(variant)
        tree.insert(10)
        with pytest.raises(KeyNotFoundError) as exc_info:
            tree.delete(11)
        assert exc_info.value.error_code == "B002"
        assert tree.keys() == (10,)

    def test_delete_from_empty_tree(self, variant):
        with pytest.raises(KeyNotFoundError):
            Tree(variant).delete(1)

    def test_minimum_of_empty_tree(self, variant):
        with pytest.raises(EmptyTreeError) as exc_info:
            Tree(variant).minimum()
        assert exc_info.value.error_code == "B003"


@pytest.mark.parametrize("variant", ALL_VARIANTS)
class TestQueries:
    """find / minimum / height / iteration."""

    @pytest.fixture
    def tree(self, variant):
        tree = Tree(variant)
        for key in (50, 30, 70, 20, 40, 60, 80):
            tree.insert(key)
        return tree

    def test_find_and_contains(self, tree):
        assert tree.find(40)
        assert 80 in tree
        assert not tree.find(45)
        assert tree_module.find(tree, 60)

    def test_minimum(self, tree):
        assert tree.minimum() == 20
        assert tree_module.minimum(tree.root) == 20
        assert tree_module.minimum(tree.root.right) == 60

    def test_height(self, tree):
        assert tree.height() == 3
        assert tree_module.height(tree.root) == 3
        assert tree_module.height(None) == 0

    def test_iteration_and_len(self, tree):
        assert list(tree) == [20, 30, 40, 50, 60, 70, 80]
        assert len(tree) == 7

    def test_module_insert_and_delete(self, tree):
        tree_module.insert(tree, 65)
        assert 65 in tree
        tree_module.delete(tree, 65)
        assert 65 not in tree

    def test_clear(self, tree):
        tree.clear()
        assert tree.is_empty
        assert len(tree) == 0
        assert tree.insert(1).operation is Operation.CREATE


# =============================================================================
# SECTION 2: Randomized properties
# =============================================================================

@pytest.mark.parametrize("variant", ALL_VARIANTS)
@pytest.mark.parametrize("seed", [1, 7, 42])
class TestRandomSequences:
    """Long mixed sequences keep every structural property."""

    def test_inserts_and_deletes_stay_valid(self, variant, seed):
        rng = random.Random(seed)
        keys = rng.sample(range(1000), 80)
        tree = Tree(variant)
        present = set()

        for key in keys:
            trace = tree.insert(key)
            present.add(key)
            tree.validate()
            assert list(reversed(trace.to_stack())) == list(trace)
            if trace.operation is not Operation.CREATE:
                assert trace.last().tag is OperationTag.END_OF_SEQUENCE
                assert trace.first().payload == ()

        rng.shuffle(keys)
        for key in keys[:60]:
            trace = tree.delete(key)
            present.discard(key)
            tree.validate()
            assert trace.last().tag is OperationTag.END_OF_SEQUENCE
            assert list(reversed(trace.to_stack())) == list(trace)

        assert tree.keys() == tuple(sorted(present))
        assert len(tree) == len(present)

    def test_delete_everything(self, variant, seed):
        rng = random.Random(seed)
        keys = rng.sample(range(500), 40)
        tree = Tree(variant)
        for key in keys:
            tree.insert(key)
        rng.shuffle(keys)
        for key in keys:
            tree.delete(key)
            tree.validate()
        assert tree.is_empty

    def test_traces_are_deterministic(self, variant, seed):
        keys = random.Random(seed).sample(range(300), 30)
        first = Tree(variant)
        second = Tree(variant)
        ids_first = [first.insert(k).trace_id for k in keys]
        ids_second = [second.insert(k).trace_id for k in keys]
        assert ids_first == ids_second


class TestAvlHeightBound:
    """Sorted inserts are the worst case for a plain BST."""

    def test_sorted_inserts(self):
        avl = Tree("avl")
        bst = Tree("bst")
        for key in range(1, 64):
            avl.insert(key)
            bst.insert(key)
        assert avl.height() == 6
        assert bst.height() == 63


# =============================================================================
# SECTION 3: Random trees
# =============================================================================

class TestGenerateRandomTree:
    """generate_random_tree()"""

    @pytest.mark.parametrize("variant", ALL_VARIANTS)
    def test_size_and_validity(self, variant):
        tree, trace = generate_random_tree(variant, 25, rng=random.Random(3))
        assert len(tree) == 25
        tree.validate()
        assert trace.operation is Operation.CREATE
        assert trace.tags == (OperationTag.CREATE_TREE,)
        assert trace[0].payload == (tree.root.key,)

    def test_keys_are_spread_out(self):
        tree, _ = generate_random_tree("bst", 50, rng=random.Random(9))
        for i, key in enumerate(tree.keys(), start=1):
            assert abs(key - 5 * i) <= 2

    def test_same_seed_same_tree(self):
        a, _ = generate_random_tree("avl", 30, rng=random.Random(11))
        b, _ = generate_random_tree("avl", 30, rng=random.Random(11))
        assert a.snapshot() == b.snapshot()

    def test_config_controls_keys(self):
        config = TreeConfig(random_key_step=10, random_key_jitter=0)
        tree, _ = generate_random_tree("red-black", 4, rng=random.Random(0), config=config)
        assert tree.keys() == (10, 20, 30, 40)

    @pytest.mark.parametrize("count", [0, -3, 201, 2.5, "5", True])
    def test_invalid_size(self, count):
        with pytest.raises(InvalidTreeSizeError) as exc_info:
            generate_random_tree("bst", count)
        assert exc_info.value.error_code == "B004"

    def test_max_size_from_config(self):
        config = TreeConfig(max_random_nodes=3)
        with pytest.raises(InvalidTreeSizeError):
            generate_random_tree("bst", 4, config=config)


class TestKeyTypes:
    """Keys a trace cannot carry are rejected before the tree changes."""

    @pytest.mark.parametrize("variant", ALL_VARIANTS)
    @pytest.mark.parametrize("key", [Decimal("1.5"), datetime.date(2024, 1, 1), None, (1, 2)])
    def test_insert_rejects_key(self, variant, key):
        tree = Tree(variant)
        with pytest.raises(UnsupportedKeyError) as exc_info:
            tree.insert(key)
        assert exc_info.value.error_code == "B006"
        assert tree.is_empty
        assert len(tree) == 0

    def test_delete_rejects_key(self):
        tree = Tree("avl")
        tree.insert(1)
        with pytest.raises(UnsupportedKeyError):
            tree.delete(Decimal(1))
        assert tree.keys() == (1,)

    @pytest.mark.parametrize("key", [7, 2.5, "m"])
    def test_supported_keys(self, key):
        tree = Tree("red-black")
        tree.insert(key)
        assert key in tree
