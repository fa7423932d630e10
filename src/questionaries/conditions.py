"""Evaluation of field dependency conditions.

The evaluator is an immutable operator -> check table, built once at import and handed to
the services by reference.
"""

import typing as t
from collections.abc import Callable, Mapping
from types import MappingProxyType

from .enums import DataType, Operator
from .exceptions import UnsupportedOperatorError
from .values import coerce_value

ConditionCheck = Callable[[DataType, t.Any, t.Any], bool]


def is_equal(data_type: DataType, answer_value: t.Any, params: t.Any) -> bool:
    """Typed equality between an answer and the condition params.

    A multi-valued selection equals a single option when that option is selected, and a
    list of options when exactly those options are selected.
    """
    answer = coerce_value(data_type, answer_value)
    expected = coerce_value(data_type, params)
    if data_type == DataType.SELECTION and isinstance(answer, tuple):
        if isinstance(expected, str):
            return expected in answer
        return set(answer) == set(expected)
    return bool(answer == expected)


def is_not_equal(data_type: DataType, answer_value: t.Any, params: t.Any) -> bool:
    """Negation of :func:`is_equal`."""
    return not is_equal(data_type, answer_value, params)


class ConditionEvaluator:
    """Decides whether an answer satisfies a dependency condition."""

    def __init__(self, checks: Mapping[Operator, ConditionCheck]) -> None:
        """Initialize the evaluator with a check for every operator."""
        missing = set(Operator) - set(checks)
        if missing:
            raise ValueError(f"No condition check registered for: {sorted(missing)}")
        self._checks: Mapping[Operator, ConditionCheck] = MappingProxyType(dict(checks))

    def get_check(self, operator: Operator | str) -> ConditionCheck:
        """Look up the check for an operator.

        Raises:
            UnsupportedOperatorError: If the operator is unknown.
        """
        try:
            return self._checks[Operator(operator)]
        except (ValueError, KeyError) as e:
            raise UnsupportedOperatorError(f"Unsupported condition operator '{operator}'.") from e

    def is_satisfied(self, data_type: DataType, answer_value: t.Any, operator: Operator | str, params: t.Any) -> bool:
        """Whether ``answer_value`` satisfies ``operator`` applied to ``params``.

        An unanswered dependency (``None``) never satisfies a condition, whatever the operator.

        Raises:
            UnsupportedOperatorError: If the operator is unknown.
            AnswerValidationError: If the answer or the params do not fit ``data_type``.
        """
        check = self.get_check(operator)
        if answer_value is None:
            return False
        return check(data_type, answer_value, params)


def build_condition_evaluator() -> ConditionEvaluator:
    """Build the evaluator with the standard operators."""
    checks: dict[Operator, ConditionCheck] = {}
    for operator in Operator:
        match operator:
            case Operator.EQ:
                checks[operator] = is_equal
            case Operator.NEQ:
                checks[operator] = is_not_equal
    return ConditionEvaluator(checks)


DEFAULT_CONDITION_EVALUATOR = build_condition_evaluator()
