"""conftest.py: Fixtures for the questionaries app."""

import typing as t
from uuid import UUID

import pytest
from django.contrib.auth.models import AbstractUser

from questionaries.authorization import DjangoAuthorizer
from questionaries.enums import DataType, Operator
from questionaries.schema import (
    FieldConditionSchema,
    FieldDependencySchema,
    QuestionarySchema,
    QuestionCreateSchema,
    QuestionSchema,
    QuestionTemplateRelationSchema,
    TemplateCreateSchema,
    TemplateSchema,
)
from questionaries.service import QuestionaryEvaluationService, TemplateService
from questionaries.stores import DjangoQuestionaryStore, DjangoTemplateStore
from questionaries.template_editor import TemplateEditor


def make_question(question_id: str, data_type: DataType = DataType.TEXT, **config: t.Any) -> QuestionSchema:
    """A question with a default config built from ``config``."""
    return QuestionSchema(
        question_id=question_id,
        data_type=data_type,
        natural_key=question_id,
        question=f"What about {question_id}?",
        default_config={"data_type": str(data_type), **config},
    )


def depends_on(question_id: str, params: t.Any, operator: Operator | str = Operator.EQ) -> FieldDependencySchema:
    return FieldDependencySchema(
        dependency_id=question_id, condition=FieldConditionSchema(operator=operator, params=params)
    )


class TemplateBuilder:
    """Builds template snapshots in memory, through the editor."""

    def __init__(self, name: str = "Proposal template") -> None:
        self.editor = TemplateEditor(TemplateSchema(name=name))

    def topic(self, title: str = "Topic", is_enabled: bool = True) -> UUID:
        """Append a topic and return its id."""
        return self.editor.create_topic(len(self.editor.template.topics), title=title, is_enabled=is_enabled).id

    def field(
        self,
        topic_id: UUID,
        question_id: str,
        data_type: DataType = DataType.TEXT,
        dependency: FieldDependencySchema | None = None,
        **config: t.Any,
    ) -> QuestionTemplateRelationSchema:
        """Append a field for a new question, optionally with a dependency."""
        field = self.editor.create_field(topic_id, make_question(question_id, data_type, **config))
        if dependency is not None:
            self.editor.set_dependency(field.id, dependency)
        return field

    def build(self) -> TemplateSchema:
        return self.editor.template.model_copy(deep=True)


@pytest.fixture
def template_builder() -> TemplateBuilder:
    return TemplateBuilder()


@pytest.fixture
def chain_template(template_builder: TemplateBuilder) -> TemplateSchema:
    """A -> B -> C: B shows when A is "yes", C shows when B is "go"."""
    topic_id = template_builder.topic("Chain")
    template_builder.field(topic_id, "a")
    template_builder.field(topic_id, "b", dependency=depends_on("a", "yes"))
    template_builder.field(topic_id, "c", dependency=depends_on("b", "go"))
    return template_builder.build()


# ---- Django fixtures ----


@pytest.fixture
def template_store() -> DjangoTemplateStore:
    return DjangoTemplateStore()


@pytest.fixture
def questionary_store() -> DjangoQuestionaryStore:
    return DjangoQuestionaryStore()


@pytest.fixture
def authorizer() -> DjangoAuthorizer:
    return DjangoAuthorizer()


@pytest.fixture
def template_service(template_store: DjangoTemplateStore, authorizer: DjangoAuthorizer) -> TemplateService:
    return TemplateService(template_store, authorizer)


@pytest.fixture
def evaluation_service(
    template_store: DjangoTemplateStore, questionary_store: DjangoQuestionaryStore, authorizer: DjangoAuthorizer
) -> QuestionaryEvaluationService:
    return QuestionaryEvaluationService(template_store, questionary_store, authorizer, reject_inactive_answers=True)


@pytest.fixture
def proposal_template(template_service: TemplateService, staff_user: AbstractUser) -> TemplateSchema:
    """A stored template with two topics.

    General: ``has_samples`` (boolean), then ``sample_description`` (required text), shown
    only when ``has_samples`` is true.
    Budget: ``budget`` (required whole number between 0 and 1000).
    """
    template = template_service.create_template(staff_user, TemplateCreateSchema(name="Proposal"))
    has_samples = template_service.create_question(
        staff_user, QuestionCreateSchema(data_type=DataType.BOOLEAN, natural_key="has_samples")
    )
    description = template_service.create_question(
        staff_user,
        QuestionCreateSchema(
            data_type=DataType.TEXT,
            natural_key="sample_description",
            default_config={"data_type": "TEXT", "required": True},
        ),
    )
    budget = template_service.create_question(
        staff_user,
        QuestionCreateSchema(
            data_type=DataType.NUMBER,
            natural_key="budget",
            default_config={
                "data_type": "NUMBER",
                "required": True,
                "integer_only": True,
                "min_value": 0,
                "max_value": 1000,
            },
        ),
    )

    template = template_service.create_topic(staff_user, template.id, 0, title="General")
    template = template_service.create_topic(staff_user, template.id, 1, title="Budget")
    general, budget_topic = template.topics
    template_service.add_question_to_template(staff_user, template.id, general.id, has_samples.question_id)
    template = template_service.add_question_to_template(
        staff_user, template.id, general.id, description.question_id
    )
    description_field = template.find_field_by_question(description.question_id)
    assert description_field is not None
    template_service.set_dependency(
        staff_user, template.id, description_field.id, depends_on(has_samples.question_id, True)
    )
    return template_service.add_question_to_template(staff_user, template.id, budget_topic.id, budget.question_id)


@pytest.fixture
def question_ids(proposal_template: TemplateSchema) -> dict[str, str]:
    """Question ids of ``proposal_template`` keyed by natural key."""
    return {f.question.natural_key: f.question_id for f in proposal_template.iter_fields()}


@pytest.fixture
def questionary(
    evaluation_service: QuestionaryEvaluationService, proposal_template: TemplateSchema, user: AbstractUser
) -> QuestionarySchema:
    """A questionary of ``proposal_template`` started by ``user``."""
    return evaluation_service.create_questionary(user, proposal_template.id)
