"""
treetrace: Search Trees That Explain Themselves
==============================================

treetrace implements three binary search tree variants (plain BST, AVL,
Red-Black) whose insert and delete operations return an ordered trace of
every decision they made: each comparison, splice, rotation and colour
change, with frozen snapshots of the tree where its shape changed. A
front end can replay the trace step by step to animate the algorithm.

What's Public
-------------
Everything exported in ``__all__`` is public:

- **Tree**: Tree facade, module-level operations, random tree generation
- **Traces**: ActionTrace, Action, OperationTag, ColorChange, snapshots
- **Replay**: TracePlayer, describe, explain, verify_determinism
- **Configuration**: TreeConfig
- **Exceptions**: All precondition, invariant and trace errors

The engines (``treetrace.bst``, ``treetrace.avl``, ``treetrace.red_black``)
and ``treetrace.recorder`` are internal: they skip precondition checks.

Example
-------
::

    from treetrace import Tree, explain

    tree = Tree("red-black")
    for key in (10, 20, 30, 15):
        tree.insert(key)

    trace = tree.delete(30)
    print(explain(trace).to_text())
"""

__version__ = "1.0.0"

__all__ = [
    # --- Package Metadata ---
    "__version__",

    # --- Tree ---
    "Tree",
    "create_tree",
    "insert",
    "delete",
    "find",
    "minimum",
    "height",
    "generate_random_tree",

    # --- Nodes ---
    "Variant",
    "Color",

    # --- Traces ---
    "Action",
    "ActionTrace",
    "ColorChange",
    "Operation",
    "OperationTag",
    "TreeSnapshot",
    "SnapshotNode",
    "TraceValidationError",
    "InvalidActionError",
    "TraceImmutabilityError",

    # --- Replay ---
    "TracePlayer",
    "TraceExplanation",
    "DeterminismCheck",
    "describe",
    "explain",
    "verify_determinism",
    "load_trace",
    "TraceReplayError",
    "TraceExhaustedError",
    "TraceLoadError",

    # --- Configuration ---
    "TreeConfig",
    "load_config_from_env",

    # --- Errors ---
    "TreeError",
    "PreconditionError",
    "DuplicateKeyError",
    "KeyNotFoundError",
    "EmptyTreeError",
    "InvalidTreeSizeError",
    "UnknownVariantError",
    "UnsupportedKeyError",
    "InvariantViolationError",
    "ConfigError",
    "format_error_for_user",
]

# =============================================================================
# Imports
# =============================================================================

from treetrace.actions import (
    Action,
    ActionTrace,
    ColorChange,
    InvalidActionError,
    Operation,
    OperationTag,
    TraceImmutabilityError,
    TraceValidationError,
)
from treetrace.config import TreeConfig, load_config_from_env
from treetrace.errors import (
    ConfigError,
    DuplicateKeyError,
    EmptyTreeError,
    InvalidTreeSizeError,
    InvariantViolationError,
    KeyNotFoundError,
    PreconditionError,
    TreeError,
    UnknownVariantError,
    UnsupportedKeyError,
    format_error_for_user,
)
from treetrace.nodes import Color, Variant
from treetrace.replay import (
    DeterminismCheck,
    TraceExhaustedError,
    TraceExplanation,
    TraceLoadError,
    TracePlayer,
    TraceReplayError,
    describe,
    explain,
    load_trace,
    verify_determinism,
)
from treetrace.snapshot import SnapshotNode, TreeSnapshot
from treetrace.tree import (
    Tree,
    create_tree,
    delete,
    find,
    generate_random_tree,
    height,
    insert,
    minimum,
)
