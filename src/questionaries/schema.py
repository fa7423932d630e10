import typing as t
from collections.abc import Iterator
from datetime import datetime
from uuid import UUID, uuid4

from ninja import Schema
from pydantic import Field, ValidationInfo, field_validator, model_validator

from .enums import DataType, Operator, TemplateCategory
from .field_config import FieldConfig, default_config_for


class BaseUUIDSchema(Schema):
    id: UUID = Field(default_factory=uuid4)


# ---- Questions ----


class QuestionSchema(Schema):
    question_id: str
    data_type: DataType
    natural_key: str
    question: str = ""
    default_config: FieldConfig = Field(None, validate_default=True)  # type: ignore[assignment]

    @field_validator("default_config", mode="before")
    @classmethod
    def fill_default_config(cls, v: t.Any, info: ValidationInfo) -> t.Any:
        """Use the data type's default config when none is given."""
        if not v and "data_type" in info.data:
            return default_config_for(info.data["data_type"])
        return v

    @model_validator(mode="after")
    def check_config_type(self) -> "QuestionSchema":
        """A question's default config must be of the question's data type."""
        if self.default_config.data_type != self.data_type:
            raise ValueError(
                f"Config of type {self.default_config.data_type} does not fit question of type {self.data_type}."
            )
        return self


class QuestionCreateSchema(Schema):
    data_type: DataType
    natural_key: str = Field(..., min_length=1, max_length=255)
    question: str = ""
    default_config: FieldConfig | None = None


# ---- Dependencies ----


class FieldConditionSchema(Schema):
    # Unknown operators are kept as loaded; editing rejects them and evaluation reports them.
    operator: Operator | str
    params: t.Any = None


class FieldDependencySchema(Schema):
    dependency_id: str
    condition: FieldConditionSchema


# ---- Template structure ----


class QuestionTemplateRelationSchema(BaseUUIDSchema):
    """The placement of a question in a template topic."""

    question: QuestionSchema
    topic_id: UUID
    sort_order: int = Field(0, ge=0)
    config: FieldConfig
    dependency: FieldDependencySchema | None = None

    @property
    def question_id(self) -> str:
        """The id of the placed question."""
        return self.question.question_id

    @property
    def data_type(self) -> DataType:
        """The data type of the placed question."""
        return self.question.data_type

    @model_validator(mode="after")
    def check_config_type(self) -> "QuestionTemplateRelationSchema":
        """A placement's config must be of the question's data type."""
        if self.config.data_type != self.question.data_type:
            raise ValueError(
                f"Config of type {self.config.data_type} does not fit question of type {self.question.data_type}."
            )
        return self


class TopicSchema(BaseUUIDSchema):
    title: str = ""
    sort_order: int = Field(0, ge=0)
    is_enabled: bool = True
    fields: list[QuestionTemplateRelationSchema] = Field(default_factory=list)


class TemplateSchema(BaseUUIDSchema):
    name: str
    description: str = ""
    category: TemplateCategory = TemplateCategory.PROPOSAL_QUESTIONARY
    is_archived: bool = False
    version: int = 0
    topics: list[TopicSchema] = Field(default_factory=list)

    def iter_fields(self) -> Iterator[QuestionTemplateRelationSchema]:
        """Yield every field in rendering order: topic sort order, then field sort order."""
        for topic in sorted(self.topics, key=lambda tp: tp.sort_order):
            yield from sorted(topic.fields, key=lambda f: f.sort_order)

    def question_ids(self) -> set[str]:
        """Ids of all questions placed in this template."""
        return {f.question_id for topic in self.topics for f in topic.fields}

    def find_topic(self, topic_id: UUID) -> TopicSchema | None:
        """Find a topic by id."""
        return next((topic for topic in self.topics if topic.id == topic_id), None)

    def find_field(self, field_id: UUID) -> QuestionTemplateRelationSchema | None:
        """Find a field by its own id."""
        return next((f for topic in self.topics for f in topic.fields if f.id == field_id), None)

    def find_field_by_question(self, question_id: str) -> QuestionTemplateRelationSchema | None:
        """Find the field placing the given question."""
        return next((f for topic in self.topics for f in topic.fields if f.question_id == question_id), None)


class TemplateFilterSchema(Schema):
    is_archived: bool | None = None
    category: TemplateCategory | None = None


class TemplateCreateSchema(Schema):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: TemplateCategory = TemplateCategory.PROPOSAL_QUESTIONARY


class TemplateUpdateSchema(Schema):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    is_archived: bool | None = None


# ---- Questionaries and answers ----


class QuestionarySchema(BaseUUIDSchema):
    template_id: UUID
    created_at: datetime


class AnswerSchema(Schema):
    questionary_id: UUID
    question_id: str
    value: t.Any = None


# ---- Evaluation output ----


class TopicSummarySchema(Schema):
    id: UUID
    title: str
    sort_order: int
    is_enabled: bool


class QuestionEvaluationSchema(Schema):
    field: QuestionTemplateRelationSchema
    answer: AnswerSchema | None = None
    is_active: bool
    diagnostic: str | None = None


class TopicEvaluationSchema(Schema):
    topic: TopicSummarySchema
    is_completed: bool
    questions: list[QuestionEvaluationSchema] = Field(default_factory=list)


class QuestionaryEvaluationSchema(Schema):
    questionary_id: UUID
    template_id: UUID
    topics: list[TopicEvaluationSchema] = Field(default_factory=list)
    orphaned_question_ids: list[str] = Field(
        default_factory=list, description="Questions with stored answers that are no longer part of the template."
    )
    diagnostics: dict[str, str] = Field(default_factory=dict)

    @property
    def is_completed(self) -> bool:
        """Whether every rendered topic is complete."""
        return all(topic.is_completed for topic in self.topics)

    def find_question(self, question_id: str) -> QuestionEvaluationSchema | None:
        """Find the evaluated entry of a question."""
        return next(
            (q for topic in self.topics for q in topic.questions if q.field.question_id == question_id),
            None,
        )


class AnswerSubmissionResultSchema(Schema):
    answers: list[AnswerSchema]
    evaluation: QuestionaryEvaluationSchema
    toggled_question_ids: list[str] = Field(
        default_factory=list, description="Dependent questions whose visibility changed with this submission."
    )
