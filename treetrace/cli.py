"""
cli.py

Command-line front end: build a tree, run inserts and deletes, and print
the caption of every action each call produced.

    treetrace --variant red-black --insert 10 20 30 15 --delete 30
    treetrace --variant avl --random 12 --seed 7 --insert 100 --json
"""

import argparse
import json
import logging
import random
import sys
from typing import List, Optional

from treetrace.actions import ActionTrace
from treetrace.config import LOG_LEVELS, TreeConfig, load_config_from_env
from treetrace.errors import TreeError, format_error_for_user
from treetrace.nodes import Variant
from treetrace.replay import TracePlayer, describe
from treetrace.tree import Tree, generate_random_tree

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treetrace",
        description="Explain BST, AVL and Red-Black tree operations step by step",
    )
    parser.add_argument(
        "--variant",
        default=Variant.BST.value,
        choices=[v.value for v in Variant],
        help="Tree variant (default: bst)",
    )
    parser.add_argument("--insert", nargs="+", type=int, default=[], metavar="KEY", help="Keys to insert, in order")
    parser.add_argument("--delete", nargs="+", type=int, default=[], metavar="KEY", help="Keys to delete after inserting")
    parser.add_argument("--random", type=int, metavar="N", help="Start from a random tree of N keys")
    parser.add_argument("--seed", type=int, help="Seed for --random")
    parser.add_argument("--json", action="store_true", help="Print traces as JSON instead of captions")
    parser.add_argument("--config", metavar="PATH", help="YAML config file (default: $TREETRACE_CONFIG)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (overrides the config)",
    )
    return parser


def _print_captions(trace: ActionTrace) -> None:
    print(f"== {trace.variant.display_name}: {trace.operation.value} {trace.key} ==")
    for action in TracePlayer(trace):
        print(f"  {describe(action, trace.variant)}")


def run(args: argparse.Namespace, config: TreeConfig) -> List[ActionTrace]:
    """Execute the requested operations and return their traces in order."""
    traces = []

    if args.random is not None:
        rng = random.Random(args.seed)
        tree, trace = generate_random_tree(args.variant, args.random, rng=rng, config=config)
        traces.append(trace)
    else:
        tree = Tree(args.variant, config=config)

    for key in args.insert:
        traces.append(tree.insert(key))
    for key in args.delete:
        traces.append(tree.delete(key))

    logger.info("ran %d operations, tree now holds %d keys", len(traces), len(tree))
    return traces


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = TreeConfig.from_file(args.config) if args.config else load_config_from_env()
    except TreeError as e:
        print(format_error_for_user(e), file=sys.stderr)
        return 2

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        traces = run(args, config)
    except TreeError as e:
        print(format_error_for_user(e), file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([t.to_dict() for t in traces], indent=2, sort_keys=True))
    else:
        for trace in traces:
            _print_captions(trace)
    return 0


if __name__ == "__main__":
    sys.exit(main())
