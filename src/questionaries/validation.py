"""Validation of answers against the configuration of their field."""

import typing as t
from decimal import Decimal

from .exceptions import AnswerValidationError
from .field_config import (
    BooleanConfig,
    DateConfig,
    EmbellishmentConfig,
    FileConfig,
    NumberConfig,
    SelectionConfig,
    TextConfig,
)
from .schema import QuestionTemplateRelationSchema
from .values import coerce_value, to_storable


def validate_answer(field: QuestionTemplateRelationSchema, value: t.Any) -> t.Any:
    """Validate a raw answer for a field and return its storable form.

    ``None`` clears an answer and is always accepted; requiredness is checked when
    computing topic completion, not on every save.

    Raises:
        AnswerValidationError: If the value does not fit the field's type or constraints.
    """
    if value is None:
        return None
    coerced = coerce_value(field.data_type, value)
    label = field.question.natural_key

    match field.config:
        case TextConfig(min_length=min_length, max_length=max_length):
            if min_length is not None and len(coerced) < min_length:
                raise AnswerValidationError(f"'{label}' must be at least {min_length} characters long.")
            if max_length is not None and len(coerced) > max_length:
                raise AnswerValidationError(f"'{label}' must be at most {max_length} characters long.")
        case NumberConfig(min_value=min_value, max_value=max_value, integer_only=integer_only):
            if integer_only and coerced != coerced.to_integral_value():
                raise AnswerValidationError(f"'{label}' must be a whole number.")
            if min_value is not None and coerced < Decimal(str(min_value)):
                raise AnswerValidationError(f"'{label}' must be at least {min_value}.")
            if max_value is not None and coerced > Decimal(str(max_value)):
                raise AnswerValidationError(f"'{label}' must be at most {max_value}.")
        case DateConfig(min_date=min_date, max_date=max_date, include_time=include_time):
            day = coerced.date()
            if min_date is not None and day < min_date:
                raise AnswerValidationError(f"'{label}' cannot be before {min_date.isoformat()}.")
            if max_date is not None and day > max_date:
                raise AnswerValidationError(f"'{label}' cannot be after {max_date.isoformat()}.")
            if not include_time:
                return day.isoformat()
        case BooleanConfig():
            pass
        case SelectionConfig(options=options, allow_multiple=allow_multiple):
            selected = (coerced,) if isinstance(coerced, str) else coerced
            if len(selected) > 1 and not allow_multiple:
                raise AnswerValidationError(f"'{label}' accepts a single option.")
            unknown = [option for option in selected if option not in options]
            if unknown:
                raise AnswerValidationError(f"'{label}' has no option(s): {', '.join(unknown)}.")
            if allow_multiple:
                return list(selected)
            return selected[0] if selected else None
        case FileConfig(max_files=max_files):
            if len(coerced) > max_files:
                raise AnswerValidationError(f"'{label}' accepts at most {max_files} file(s).")
        case EmbellishmentConfig():
            raise AnswerValidationError(f"'{label}' is display-only and cannot be answered.")

    return to_storable(coerced)


def is_answer_complete(field: QuestionTemplateRelationSchema, value: t.Any) -> bool:
    """Whether a stored value counts as a valid, non-empty answer for the field."""
    if value is None or value == "" or value == []:
        return False
    try:
        validate_answer(field, value)
    except AnswerValidationError:
        return False
    return True
