"""Coercion of raw answer values into comparable, storable Python values.

Answers and dependency params arrive as JSON-compatible values. ``coerce_value`` turns them
into a canonical form per data type (``Decimal`` for numbers, aware ``datetime`` for dates,
tuples for multi-valued answers) and ``to_storable`` turns the canonical form back into
JSON-compatible data. Fractional numbers are stored as decimal strings so no digits are lost.
"""

import typing as t
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation

from .enums import DataType
from .exceptions import AnswerValidationError


def _coerce_text(value: t.Any) -> str:
    if not isinstance(value, str):
        raise AnswerValidationError(f"Expected a string, got {type(value).__name__}.")
    return value


def _coerce_number(value: t.Any) -> Decimal:
    # bool is an int subclass; True is not a number answer.
    if isinstance(value, bool) or not isinstance(value, int | float | Decimal | str):
        raise AnswerValidationError(f"Expected a number, got {type(value).__name__}.")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise AnswerValidationError(f"'{value}' is not a valid number.") from e
    if not number.is_finite():
        raise AnswerValidationError("Numbers must be finite.")
    return number


def _coerce_date(value: t.Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise AnswerValidationError(f"'{value}' is not an ISO 8601 date.") from e
    else:
        raise AnswerValidationError(f"Expected a date, got {type(value).__name__}.")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


def _coerce_boolean(value: t.Any) -> bool:
    if not isinstance(value, bool):
        raise AnswerValidationError(f"Expected a boolean, got {type(value).__name__}.")
    return value


def _coerce_string_list(value: t.Any) -> tuple[str, ...]:
    if not isinstance(value, list | tuple) or not all(isinstance(item, str) for item in value):
        raise AnswerValidationError("Expected a list of strings.")
    return tuple(value)


def _coerce_selection(value: t.Any) -> str | tuple[str, ...]:
    if isinstance(value, str):
        return value
    return _coerce_string_list(value)


def coerce_value(data_type: DataType | str, value: t.Any) -> t.Any:
    """Coerce a non-null raw value to the canonical form of ``data_type``.

    Raises:
        AnswerValidationError: If the value does not fit the data type.
    """
    match data_type:
        case DataType.TEXT:
            return _coerce_text(value)
        case DataType.NUMBER:
            return _coerce_number(value)
        case DataType.DATE:
            return _coerce_date(value)
        case DataType.BOOLEAN:
            return _coerce_boolean(value)
        case DataType.SELECTION:
            return _coerce_selection(value)
        case DataType.FILE:
            return _coerce_string_list(value)
        case DataType.EMBELLISHMENT:
            raise AnswerValidationError("Embellishments do not hold answers.")
    raise AnswerValidationError(f"Unknown data type '{data_type}'.")


def to_storable(value: t.Any) -> t.Any:
    """Convert a canonical value back into JSON-compatible data."""
    if isinstance(value, Decimal):
        # Non-integral numbers keep their exact digits as a string.
        return int(value) if value == value.to_integral_value() else str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, tuple):
        return list(value)
    return value
