"""
config.py

Configuration for treetrace.

Defaults are baked in; a YAML file can override any of them:

    messages:
      avl:
        insert: "Insertion complete, tree is balanced."
        delete: "Deletion complete, tree is balanced."
    random_tree:
      key_step: 5
      key_jitter: 2
      max_nodes: 200
    log_level: WARNING
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from treetrace.errors import ConfigError
from treetrace.nodes import Variant

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TREETRACE_CONFIG"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_messages() -> Dict[str, Dict[str, str]]:
    return {
        Variant.BST.value: {
            "insert": "Insertion complete.",
            "delete": "Deletion complete.",
        },
        Variant.AVL.value: {
            "insert": "Insertion complete, tree is balanced.",
            "delete": "Deletion complete, tree is balanced.",
        },
        Variant.RED_BLACK.value: {
            "insert": "Insertion complete, tree is balanced.",
            "delete": "Deletion complete, tree is balanced.",
        },
    }


@dataclass
class TreeConfig:
    """Tunables shared by the engines, the tree facade and the CLI."""

    messages: Dict[str, Dict[str, str]] = field(default_factory=_default_messages)
    random_key_step: int = 5
    random_key_jitter: int = 2
    max_random_nodes: int = 200
    log_level: str = "WARNING"

    def __post_init__(self):
        merged = _default_messages()
        for name, per_operation in self.messages.items():
            merged.setdefault(name, {}).update(per_operation)
        self.messages = merged

    def completion_message(self, variant: Variant, operation: str) -> str:
        """End-of-sequence message for a variant and operation name."""
        return self.messages[variant.value][operation]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], source: Optional[str] = None) -> "TreeConfig":
        """
        Build a config from parsed YAML.

        Raises:
            ConfigError: If a section has the wrong shape
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("top level must be a mapping", source=source)

        messages = _default_messages()
        overrides = data.get("messages", {})
        if not isinstance(overrides, dict):
            raise ConfigError("'messages' must be a mapping", source=source)
        for name, per_operation in overrides.items():
            variant = Variant.parse(name)
            if not isinstance(per_operation, dict):
                raise ConfigError(f"messages.{name} must be a mapping", source=source)
            for operation, text in per_operation.items():
                if operation not in ("insert", "delete"):
                    raise ConfigError(
                        f"unknown operation '{operation}' in messages.{name}",
                        source=source,
                    )
                messages[variant.value][operation] = str(text)

        random_tree = data.get("random_tree", {})
        if not isinstance(random_tree, dict):
            raise ConfigError("'random_tree' must be a mapping", source=source)

        try:
            config = cls(
                messages=messages,
                random_key_step=int(random_tree.get("key_step", 5)),
                random_key_jitter=int(random_tree.get("key_jitter", 2)),
                max_random_nodes=int(random_tree.get("max_nodes", 200)),
                log_level=str(data.get("log_level", "WARNING")).upper(),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(str(e), source=source) from e

        if config.random_key_jitter < 0:
            raise ConfigError("random_tree.key_jitter must not be negative", source=source)
        if config.random_key_step < 1:
            raise ConfigError("random_tree.key_step must be at least 1", source=source)
        if config.random_key_step <= 2 * config.random_key_jitter:
            raise ConfigError(
                "random_tree.key_step must exceed twice key_jitter so keys stay distinct",
                source=source,
            )
        if config.max_random_nodes < 1:
            raise ConfigError("random_tree.max_nodes must be at least 1", source=source)
        if config.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {config.log_level!r}",
                source=source,
            )
        return config

    @classmethod
    def from_file(cls, path: Union[Path, str]) -> "TreeConfig":
        """
        Load a YAML config file.

        Raises:
            ConfigError: If the file is missing or malformed
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError("file not found", source=str(path))
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error: {e}", source=str(path)) from e
        return cls.from_dict(data, source=str(path))


def load_config_from_env() -> TreeConfig:
    """Load the config named by TREETRACE_CONFIG, or the defaults."""
    config_path = os.getenv(CONFIG_ENV_VAR)
    if not config_path:
        return TreeConfig()
    logger.info("loading config from %s", config_path)
    return TreeConfig.from_file(config_path)
