"""test_conditions.py: Unit tests for the condition evaluator."""

from datetime import date

import pytest

from questionaries.conditions import (
    DEFAULT_CONDITION_EVALUATOR,
    ConditionEvaluator,
    build_condition_evaluator,
    is_equal,
)
from questionaries.enums import DataType, Operator
from questionaries.exceptions import AnswerValidationError, UnsupportedOperatorError

evaluator = DEFAULT_CONDITION_EVALUATOR


@pytest.mark.parametrize(
    "data_type,answer,params,expected",
    [
        (DataType.TEXT, "yes", "yes", True),
        (DataType.TEXT, "Yes", "yes", False),
        (DataType.NUMBER, 1, "1.0", True),
        (DataType.NUMBER, 2.5, 2.50, True),
        (DataType.NUMBER, 3, 4, False),
        (DataType.BOOLEAN, True, True, True),
        (DataType.BOOLEAN, False, True, False),
        (DataType.DATE, "2024-05-01", date(2024, 5, 1), True),
        (DataType.DATE, "2024-05-01T00:00:00+00:00", "2024-05-01", True),
        (DataType.DATE, "2024-05-02", "2024-05-01", False),
        (DataType.SELECTION, "red", "red", True),
    ],
)
def test_eq_compares_typed_values(data_type: DataType, answer: object, params: object, expected: bool) -> None:
    """EQ compares both sides after coercing them to the question's data type."""
    assert evaluator.is_satisfied(data_type, answer, Operator.EQ, params) is expected


def test_eq_on_multi_select_matches_a_selected_option() -> None:
    """A multi-valued selection equals a single option when that option is selected."""
    assert evaluator.is_satisfied(DataType.SELECTION, ["red", "blue"], Operator.EQ, "blue")
    assert not evaluator.is_satisfied(DataType.SELECTION, ["red", "blue"], Operator.EQ, "green")


def test_eq_on_multi_select_matches_the_same_set() -> None:
    """A list param equals a multi-valued selection of exactly those options, in any order."""
    assert is_equal(DataType.SELECTION, ["red", "blue"], ["blue", "red"])
    assert not is_equal(DataType.SELECTION, ["red", "blue"], ["red"])


def test_neq_negates_eq_for_answered_questions() -> None:
    assert evaluator.is_satisfied(DataType.TEXT, "no", Operator.NEQ, "yes")
    assert not evaluator.is_satisfied(DataType.TEXT, "yes", Operator.NEQ, "yes")


@pytest.mark.parametrize("operator", [Operator.EQ, Operator.NEQ])
def test_missing_answer_never_satisfies(operator: Operator) -> None:
    """An unanswered dependency satisfies neither EQ nor NEQ."""
    assert evaluator.is_satisfied(DataType.TEXT, None, operator, "yes") is False


def test_unknown_operator_raises_even_without_answer() -> None:
    """The operator is looked up before the answer is inspected."""
    with pytest.raises(UnsupportedOperatorError):
        evaluator.is_satisfied(DataType.TEXT, None, "contains", "yes")
    with pytest.raises(UnsupportedOperatorError):
        evaluator.is_satisfied(DataType.TEXT, "yes", "contains", "yes")


def test_uncoercible_answer_raises_validation_error() -> None:
    with pytest.raises(AnswerValidationError):
        evaluator.is_satisfied(DataType.NUMBER, "many", Operator.EQ, 3)


def test_bool_is_not_a_number() -> None:
    with pytest.raises(AnswerValidationError):
        evaluator.is_satisfied(DataType.NUMBER, True, Operator.EQ, 1)


def test_evaluator_requires_a_check_for_every_operator() -> None:
    """Building an evaluator with an incomplete table fails up front."""
    with pytest.raises(ValueError, match="No condition check registered"):
        ConditionEvaluator({Operator.EQ: is_equal})


def test_check_table_is_read_only() -> None:
    """The operator table cannot be changed after construction."""
    built = build_condition_evaluator()
    with pytest.raises(TypeError):
        built._checks[Operator.EQ] = lambda *args: True  # type: ignore[index]
