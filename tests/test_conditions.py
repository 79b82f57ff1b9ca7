from __future__ import annotations

import pytest

from flash_installer.conditions import evaluate, validate_expression
from flash_installer.errors import ConfigError


class CountingSettings(dict):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.lookups = []

    def get(self, key, default=None):
        self.lookups.append(key)
        return super().get(key, default)


EXPRESSIONS = [
    None,
    {"var": "x", "value": 1},
    {"var": "missing", "value": None},
    {"AND": []},
    {"OR": []},
    {"AND": [{"var": "x", "value": 1}, {"var": "y", "value": "a"}]},
    {"OR": [{"var": "x", "value": 2}, {"NOT": {"var": "y", "value": "b"}}]},
]

SETTINGS = [{}, {"x": 1}, {"x": 2, "y": "a"}, {"x": 1, "y": "b"}]


def test_no_condition_is_true() -> None:
    assert evaluate(None, {}) is True


def test_leaf_compares_setting_value() -> None:
    leaf = {"var": "x", "value": 1}
    assert evaluate(leaf, {"x": 1}) is True
    assert evaluate(leaf, {"x": 2}) is False
    assert evaluate(leaf, {}) is False


def test_leaf_on_missing_key_is_false_even_for_none() -> None:
    assert evaluate({"var": "x", "value": None}, {}) is False
    assert evaluate({"var": "x", "value": None}, {"x": None}) is True


def test_empty_and_or() -> None:
    assert evaluate({"AND": []}, {}) is True
    assert evaluate({"OR": []}, {}) is False


@pytest.mark.parametrize("expr", [e for e in EXPRESSIONS if e is not None])
@pytest.mark.parametrize("settings", SETTINGS)
def test_double_negation(expr, settings) -> None:
    assert evaluate({"NOT": {"NOT": expr}}, settings) == evaluate(expr, settings)


def test_and_evaluates_every_child() -> None:
    settings = CountingSettings(x=2)
    expr = {"AND": [{"var": "x", "value": 1}, {"var": "y", "value": 1}, {"var": "z", "value": 1}]}
    assert evaluate(expr, settings) is False
    assert settings.lookups == ["x", "y", "z"]


def test_or_evaluates_every_child() -> None:
    settings = CountingSettings(x=1)
    expr = {"OR": [{"var": "x", "value": 1}, {"var": "y", "value": 1}]}
    assert evaluate(expr, settings) is True
    assert settings.lookups == ["x", "y"]


def test_nested_expression() -> None:
    expr = {"AND": [{"OR": [{"var": "a", "value": 1}, {"var": "b", "value": 1}]}, {"NOT": {"var": "c", "value": 1}}]}
    assert evaluate(expr, {"b": 1}) is True
    assert evaluate(expr, {"b": 1, "c": 1}) is False


@pytest.mark.parametrize(
    "expr",
    [
        {"AND": [], "OR": []},
        {"value": 1},
        {"AND": {"var": "x", "value": 1}},
        {"NOT": None},
        {"OR": [{"var": "x"}, "nope"]},
        ["var", "x"],
    ],
)
def test_malformed_expressions_are_rejected(expr) -> None:
    with pytest.raises(ConfigError):
        validate_expression(expr)


def test_well_formed_expression_validates() -> None:
    validate_expression({"NOT": {"AND": [{"var": "x", "value": 1}, {"OR": []}]}})
