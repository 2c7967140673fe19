"""
Edge Condition Evaluation.

An edge's ``conditions`` mapping takes one of three shapes:

- ``{}``: unconditional, always satisfied.
- a flat map ``{"status": "valid", "size": 150}``: every key must be
  present in the source node's outputs with a strictly equal value.
- a predicate tree under ``all`` and/or ``any``::

    {
        "all": [
            {"fact": "status", "operator": "equal", "value": "valid"},
            {"any": [
                {"fact": "size", "operator": "greaterThan", "value": 100},
                {"fact": "priority", "operator": "equal", "value": "high"},
            ]},
        ]
    }

Ordering operators only hold between numbers; any other operands make
the leaf false. Tree evaluation raises ``ConditionEvaluationError`` on a
malformed rule, an unknown operator or a fact missing from the outputs.
``evaluate_conditions`` catches any evaluation error and reports the edge
as not satisfied.
"""

from typing import Any, Callable, Dict, Mapping
import logging

from flowmachine.engine.errors import ConditionEvaluationError


logger = logging.getLogger(__name__)


ALL = "all"
ANY = "any"

_MISSING = object()
_COMPOSITE = (dict, list, set, tuple)


def strict_equal(actual: Any, expected: Any) -> bool:
    """
    Equality without coercion or structural comparison.

    Composite values only match themselves, and booleans never match
    numbers (``True != 1`` here).
    """
    if isinstance(actual, _COMPOSITE) or isinstance(expected, _COMPOSITE):
        return actual is expected
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _ordered(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    # Ordering only applies to numbers; anything else is simply not satisfied
    def compare(actual: Any, expected: Any) -> bool:
        if not _is_number(actual) or not _is_number(expected):
            return False
        return bool(op(actual, expected))
    return compare


def _contains(actual: Any, expected: Any) -> bool:
    try:
        return expected in actual
    except TypeError as e:
        raise ConditionEvaluationError(
            f"'{type(actual).__name__}' value does not support 'contains'"
        ) from e


def _member(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple, set)):
        raise ConditionEvaluationError("'in' / 'notIn' require a list value")
    return any(strict_equal(actual, item) for item in expected)


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equal": strict_equal,
    "notEqual": lambda actual, expected: not strict_equal(actual, expected),
    "greaterThan": _ordered(lambda a, b: a > b),
    "greaterThanInclusive": _ordered(lambda a, b: a >= b),
    "lessThan": _ordered(lambda a, b: a < b),
    "lessThanInclusive": _ordered(lambda a, b: a <= b),
    "in": _member,
    "notIn": lambda actual, expected: not _member(actual, expected),
    "contains": _contains,
    "doesNotContain": lambda actual, expected: not _contains(actual, expected),
}


def is_compound(conditions: Mapping[str, Any]) -> bool:
    """True if the conditions use the ``all`` / ``any`` tree form."""
    return ALL in conditions or ANY in conditions


def evaluate_flat(conditions: Mapping[str, Any], outputs: Mapping[str, Any]) -> bool:
    """Every condition key must be present in outputs with a strictly equal value."""
    for key, expected in conditions.items():
        actual = outputs.get(key, _MISSING)
        if actual is _MISSING or not strict_equal(actual, expected):
            return False
    return True


def evaluate_rule(rule: Any, facts: Mapping[str, Any]) -> bool:
    """
    Evaluate one node of a predicate tree against the facts.

    Within a mapping that holds both ``all`` and ``any``, both must hold.

    Raises:
        ConditionEvaluationError: if the rule cannot be evaluated
    """
    if not isinstance(rule, Mapping):
        raise ConditionEvaluationError(f"Rule must be a mapping, got {type(rule).__name__}")

    if is_compound(rule):
        result = True
        if ALL in rule:
            result = all(evaluate_rule(child, facts) for child in _children(rule, ALL))
        if result and ANY in rule:
            result = any(evaluate_rule(child, facts) for child in _children(rule, ANY))
        return result

    for field in ("fact", "operator", "value"):
        if field not in rule:
            raise ConditionEvaluationError(f"Rule is missing '{field}': {dict(rule)}")

    fact = rule["fact"]
    if not isinstance(fact, str):
        raise ConditionEvaluationError(f"Fact name must be a string, got {type(fact).__name__}")
    if not isinstance(rule["operator"], str):
        raise ConditionEvaluationError(
            f"Operator must be a string, got {type(rule['operator']).__name__}"
        )
    operator = OPERATORS.get(rule["operator"])
    if operator is None:
        raise ConditionEvaluationError(f"Unknown operator: {rule['operator']}")
    if fact not in facts:
        raise ConditionEvaluationError(f"Undefined fact: {fact}")

    return operator(facts[fact], rule["value"])


def _children(rule: Mapping[str, Any], key: str) -> list:
    children = rule[key]
    if not isinstance(children, (list, tuple)):
        raise ConditionEvaluationError(f"'{key}' must hold a list of rules")
    return list(children)


def evaluate_conditions(conditions: Mapping[str, Any], outputs: Mapping[str, Any]) -> bool:
    """
    Decide whether an edge can be taken given the source node's outputs.

    Never raises for a tree that fails to evaluate; the failure is logged
    and the edge counts as not satisfied.
    """
    if not conditions:
        return True

    if is_compound(conditions):
        try:
            return evaluate_rule(conditions, outputs)
        except Exception as e:
            logger.warning(f"Error evaluating condition rules: {e}")
            return False

    return evaluate_flat(conditions, outputs)
