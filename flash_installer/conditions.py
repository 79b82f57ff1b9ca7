from __future__ import annotations

from typing import Any, Mapping, Optional

from .errors import ConfigError

_OPERATORS = ("AND", "OR", "NOT")
_MISSING = object()


def validate_expression(expr: Any, *, where: str = "condition") -> None:
    """Raise ConfigError unless expr is exactly one of leaf/AND/OR/NOT."""

    if expr is None:
        return
    if not isinstance(expr, Mapping):
        raise ConfigError(f"{where}: expression must be a mapping, got {type(expr).__name__}")

    ops = [op for op in _OPERATORS if op in expr]
    if len(ops) > 1:
        raise ConfigError(f"{where}: expression mixes operators {ops}")
    if not ops:
        if "var" not in expr:
            raise ConfigError(f"{where}: leaf expression needs 'var'")
        return

    op = ops[0]
    if op == "NOT":
        if expr["NOT"] is None:
            raise ConfigError(f"{where}: NOT needs an operand")
        validate_expression(expr["NOT"], where=f"{where}.NOT")
        return

    children = expr[op]
    if not isinstance(children, list):
        raise ConfigError(f"{where}: {op} needs a list")
    for i, child in enumerate(children):
        validate_expression(child, where=f"{where}.{op}[{i}]")


def evaluate(expr: Optional[Mapping[str, Any]], settings: Mapping[str, Any]) -> bool:
    """Evaluate a condition expression against the run settings."""

    if not expr:
        return True
    if "AND" in expr:
        # Every child is evaluated; no short-circuit.
        results = [evaluate(child, settings) for child in expr["AND"]]
        return all(results)
    if "OR" in expr:
        results = [evaluate(child, settings) for child in expr["OR"]]
        return any(results)
    if "NOT" in expr:
        return not evaluate(expr["NOT"], settings)
    actual = settings.get(expr.get("var"), _MISSING)
    return actual is not _MISSING and actual == expr.get("value")
