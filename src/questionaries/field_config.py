"""Typed, per data type configuration of questions.

A question carries a default config; every placement of the question in a template carries
its own copy that administrators may override. Configs are a tagged union keyed by
``data_type`` and are parsed at the store boundary, so nothing downstream handles raw JSON.
"""

import typing as t
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .enums import DataType


class BaseFieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    required: bool = False
    small_label: str = ""
    tooltip: str = ""


class TextConfig(BaseFieldConfig):
    data_type: t.Literal["TEXT"] = "TEXT"
    min_length: int | None = Field(None, ge=0)
    max_length: int | None = Field(None, ge=1)
    multiline: bool = False
    placeholder: str = ""

    @model_validator(mode="after")
    def check_length_bounds(self) -> t.Self:
        """Ensure min_length does not exceed max_length."""
        if self.min_length is not None and self.max_length is not None and self.min_length > self.max_length:
            raise ValueError("min_length cannot be greater than max_length.")
        return self


class NumberConfig(BaseFieldConfig):
    data_type: t.Literal["NUMBER"] = "NUMBER"
    min_value: float | None = None
    max_value: float | None = None
    integer_only: bool = False

    @model_validator(mode="after")
    def check_value_bounds(self) -> t.Self:
        """Ensure min_value does not exceed max_value."""
        if self.min_value is not None and self.max_value is not None and self.min_value > self.max_value:
            raise ValueError("min_value cannot be greater than max_value.")
        return self


class DateConfig(BaseFieldConfig):
    data_type: t.Literal["DATE"] = "DATE"
    min_date: date | None = None
    max_date: date | None = None
    include_time: bool = False

    @model_validator(mode="after")
    def check_date_bounds(self) -> t.Self:
        """Ensure min_date is not after max_date."""
        if self.min_date is not None and self.max_date is not None and self.min_date > self.max_date:
            raise ValueError("min_date cannot be after max_date.")
        return self


class BooleanConfig(BaseFieldConfig):
    data_type: t.Literal["BOOLEAN"] = "BOOLEAN"


class SelectionConfig(BaseFieldConfig):
    data_type: t.Literal["SELECTION"] = "SELECTION"
    options: list[str] = Field(default_factory=list)
    allow_multiple: bool = False

    @field_validator("options")
    @classmethod
    def check_unique_options(cls, v: list[str]) -> list[str]:
        """Options are matched by value, so they must be unique."""
        if len(set(v)) != len(v):
            raise ValueError("Selection options must be unique.")
        return v


class FileConfig(BaseFieldConfig):
    data_type: t.Literal["FILE"] = "FILE"
    allowed_mime_types: list[str] = Field(default_factory=list)
    max_files: int = Field(1, ge=1)


class EmbellishmentConfig(BaseFieldConfig):
    data_type: t.Literal["EMBELLISHMENT"] = "EMBELLISHMENT"
    html: str = ""
    plain: str = ""
    omit_from_pdf: bool = False

    @model_validator(mode="after")
    def check_not_required(self) -> t.Self:
        """Display-only blocks cannot be answered, hence cannot be required."""
        if self.required:
            raise ValueError("Embellishments cannot be required.")
        return self


FieldConfig = t.Annotated[
    TextConfig | NumberConfig | DateConfig | BooleanConfig | SelectionConfig | FileConfig | EmbellishmentConfig,
    Field(discriminator="data_type"),
]

FIELD_CONFIG_ADAPTER: TypeAdapter[FieldConfig] = TypeAdapter(FieldConfig)


def default_config_for(data_type: DataType | str) -> FieldConfig:
    """Build the default config for a data type."""
    return FIELD_CONFIG_ADAPTER.validate_python({"data_type": str(data_type)})
