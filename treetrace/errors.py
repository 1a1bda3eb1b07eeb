"""
errors.py

Error system for treetrace.

Design principles:
- Caller contract violations are rejected before an engine runs
- Internal invariant violations fail fast and abort the operation
- Explain what went wrong in plain language
- Suggest fixes when possible
"""

from typing import Any, List, Optional


class TreeError(Exception):
    """
    Base class for all treetrace errors.

    Every error carries:
    - A stable error code (B0xx for trees, C0xx for configuration)
    - A one-line message
    - An optional explanation and list of suggestions
    """

    def __init__(
        self,
        message: str,
        *,
        explanation: str = "",
        suggestions: Optional[List[str]] = None,
        error_code: str = "B000",
    ):
        self.message = message
        self.explanation = explanation
        self.suggestions = suggestions or []
        self.error_code = error_code
        super().__init__(self.format_short())

    def format_short(self) -> str:
        """Format as single-line error message."""
        return f"[{self.error_code}] {self.message}"

    def format_full(self) -> str:
        """Format as multi-line human-readable error."""
        lines = [f"Error {self.error_code}", "", f"  {self.message}"]

        if self.explanation:
            lines.append("")
            lines.append(f"  {self.explanation}")

        if self.suggestions:
            lines.append("")
            if len(self.suggestions) == 1:
                lines.append(f"  Suggestion: {self.suggestions[0]}")
            else:
                lines.append("  Suggestions:")
                for suggestion in self.suggestions:
                    lines.append(f"    - {suggestion}")

        return "\n".join(lines)


# === Precondition Errors (B00x) ===

class PreconditionError(TreeError):
    """Base class for caller contract violations."""
    pass


class DuplicateKeyError(PreconditionError):
    """Raised when inserting a key that is already stored."""

    def __init__(self, key: Any, tree_name: str = "tree"):
        super().__init__(
            message=f"Key {key!r} already exists in the {tree_name}",
            explanation="Every key is stored at most once.",
            suggestions=["Delete the key first, or insert a different key"],
            error_code="B001",
        )
        self.key = key


class KeyNotFoundError(PreconditionError):
    """Raised when deleting a key that is not stored."""

    def __init__(self, key: Any, tree_name: str = "tree"):
        super().__init__(
            message=f"Key {key!r} does not exist in the {tree_name}",
            suggestions=["Check membership with find() before deleting"],
            error_code="B002",
        )
        self.key = key


class EmptyTreeError(PreconditionError):
    """Raised when an operation needs at least one node."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"Cannot {operation}: tree is empty",
            error_code="B003",
        )
        self.operation = operation


class InvalidTreeSizeError(PreconditionError):
    """Raised when a random tree is requested with an unsupported size."""

    def __init__(self, count: Any, minimum: int, maximum: int):
        super().__init__(
            message=f"Tree size {count!r} is out of range",
            suggestions=[f"Use a number between {minimum} and {maximum}"],
            error_code="B004",
        )
        self.count = count
        self.minimum = minimum
        self.maximum = maximum


class UnknownVariantError(PreconditionError):
    """Raised when a tree variant name cannot be resolved."""

    def __init__(self, name: Any, valid: Optional[List[str]] = None):
        suggestions = []
        if valid:
            suggestions.append(f"Use one of: {', '.join(valid)}")
        super().__init__(
            message=f"Unknown tree variant {name!r}",
            suggestions=suggestions,
            error_code="B005",
        )
        self.name = name


class UnsupportedKeyError(PreconditionError):
    """Raised when a key cannot be carried in a trace payload."""

    def __init__(self, key: Any):
        super().__init__(
            message=f"Key {key!r} of type {type(key).__name__} is not supported",
            explanation="Trace payloads hold only int, float and str keys.",
            suggestions=["Convert the key to int, float or str before inserting"],
            error_code="B006",
        )
        self.key = key


# === Internal Errors (B01x) ===

class InvariantViolationError(TreeError):
    """
    Raised when the tree or the trace reaches a state the algorithms
    never produce. Always indicates a bug, never bad input.
    """

    def __init__(self, message: str, *, node_key: Any = None):
        explanation = ""
        if node_key is not None:
            explanation = f"Detected at node {node_key!r}."
        super().__init__(
            message=message,
            explanation=explanation,
            error_code="B010",
        )
        self.node_key = node_key


# === Configuration Errors (C0xx) ===

class ConfigError(TreeError):
    """Raised when a configuration file cannot be used."""

    def __init__(self, message: str, source: Optional[str] = None):
        source_info = f" ({source})" if source else ""
        super().__init__(
            message=f"Invalid configuration{source_info}: {message}",
            error_code="C001",
        )
        self.source = source


def format_error_for_user(error: Exception) -> str:
    """
    Format any exception for display to the user.

    treetrace errors get their full format; anything else is wrapped
    in a generic message.
    """
    if isinstance(error, TreeError):
        return error.format_full()
    return f"Error\n\n  {error}\n\n  This is an unexpected error."
