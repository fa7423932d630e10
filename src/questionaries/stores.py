"""Django ORM implementations of the template and questionary stores."""

import typing as t
from collections.abc import Mapping
from uuid import UUID

import structlog
from django.contrib.auth import get_user_model
from django.db import transaction

from .enums import TemplateCategory
from .exceptions import (
    QuestionaryNotFoundError,
    QuestionNotFoundError,
    StaleTemplateError,
    TemplateInUseError,
    TemplateIntegrityError,
    TemplateNotFoundError,
)
from .models import Answer, Question, Questionary, QuestionTemplateRelation, Template, Topic
from .schema import (
    AnswerSchema,
    FieldConditionSchema,
    FieldDependencySchema,
    QuestionarySchema,
    QuestionSchema,
    QuestionTemplateRelationSchema,
    TemplateFilterSchema,
    TemplateSchema,
    TopicSchema,
)

logger = structlog.get_logger(__name__)


# ---- ORM -> snapshot conversion ----


def question_to_schema(question: Question) -> QuestionSchema:
    """Convert a Question row to its schema, parsing its default config."""
    return QuestionSchema(
        question_id=question.id,
        data_type=question.data_type,
        natural_key=question.natural_key,
        question=question.question,
        default_config=question.default_config or None,
    )


def field_to_schema(relation: QuestionTemplateRelation) -> QuestionTemplateRelationSchema:
    """Convert a QuestionTemplateRelation row to its schema."""
    question = question_to_schema(relation.question)
    dependency = None
    if relation.dependency_question_id is not None:
        dependency = FieldDependencySchema(
            dependency_id=relation.dependency_question_id,
            condition=FieldConditionSchema(
                operator=relation.dependency_operator or "", params=relation.dependency_params
            ),
        )
    return QuestionTemplateRelationSchema(
        id=relation.id,
        question=question,
        topic_id=relation.topic_id,
        sort_order=relation.sort_order,
        config=relation.config or question.default_config,
        dependency=dependency,
    )


def template_to_schema(template: Template) -> TemplateSchema:
    """Convert a Template, prefetched with its structure, to a snapshot."""
    return TemplateSchema(
        id=template.id,
        name=template.name,
        description=template.description,
        category=template.category,
        is_archived=template.is_archived,
        version=template.version,
        topics=[
            TopicSchema(
                id=topic.id,
                title=topic.title,
                sort_order=topic.sort_order,
                is_enabled=topic.is_enabled,
                fields=[field_to_schema(relation) for relation in topic.fields.all()],
            )
            for topic in template.topics.all()
        ],
    )


def questionary_to_schema(questionary: Questionary) -> QuestionarySchema:
    return QuestionarySchema(id=questionary.id, template_id=questionary.template_id, created_at=questionary.created_at)


def answer_to_schema(answer: Answer) -> AnswerSchema:
    return AnswerSchema(questionary_id=answer.questionary_id, question_id=answer.question_id, value=answer.value)


# ---- Template store ----


class DjangoTemplateStore:
    """Template store backed by the Django ORM."""

    def get_template(self, template_id: UUID) -> TemplateSchema:
        """Load a template snapshot."""
        try:
            template = Template.objects.with_structure().get(pk=template_id)
        except Template.DoesNotExist:
            raise TemplateNotFoundError(f"Template {template_id} does not exist.")
        return template_to_schema(template)

    def get_templates(self, filters: TemplateFilterSchema) -> list[TemplateSchema]:
        """List templates matching the filters."""
        queryset = Template.objects.with_structure()
        if filters.is_archived is not None:
            queryset = queryset.filter(is_archived=filters.is_archived)
        if filters.category is not None:
            queryset = queryset.filter(category=filters.category)
        return [template_to_schema(template) for template in queryset]

    @transaction.atomic
    def save_template(self, template: TemplateSchema, expected_version: int | None = None) -> TemplateSchema:
        """Replace the stored template with the snapshot, all or nothing."""
        try:
            stored = Template.objects.select_for_update().get(pk=template.id)
        except Template.DoesNotExist:
            raise TemplateNotFoundError(f"Template {template.id} does not exist.")
        if expected_version is not None and stored.version != expected_version:
            logger.warning(
                "template_save_stale",
                template_id=str(template.id),
                expected_version=expected_version,
                stored_version=stored.version,
            )
            raise StaleTemplateError(
                f"Template {template.id} changed since it was read (version {expected_version} -> {stored.version})."
            )

        topic_ids = {topic.id for topic in template.topics}
        fields = [f for topic in template.topics for f in topic.fields]
        field_ids = {f.id for f in fields}
        if Topic.objects.filter(id__in=topic_ids).exclude(template=stored).exists():
            raise TemplateIntegrityError("Some topics belong to another template.")
        if QuestionTemplateRelation.objects.filter(id__in=field_ids).exclude(template=stored).exists():
            raise TemplateIntegrityError("Some fields belong to another template.")
        question_ids = {f.question_id for f in fields}
        missing = question_ids - set(Question.objects.filter(id__in=question_ids).values_list("id", flat=True))
        if missing:
            raise QuestionNotFoundError(f"Questions do not exist: {sorted(missing)}")

        stored.name = template.name
        stored.description = template.description
        stored.category = template.category
        stored.is_archived = template.is_archived
        stored.version += 1
        stored.save()

        # Removed fields go first so a re-added question does not collide with its old placement.
        QuestionTemplateRelation.objects.filter(template=stored).exclude(id__in=field_ids).delete()

        for topic in template.topics:
            Topic.objects.update_or_create(
                id=topic.id,
                defaults={
                    "template": stored,
                    "title": topic.title,
                    "sort_order": topic.sort_order,
                    "is_enabled": topic.is_enabled,
                },
            )
        for f in fields:
            dependency = f.dependency
            QuestionTemplateRelation.objects.update_or_create(
                id=f.id,
                defaults={
                    "template": stored,
                    "topic_id": f.topic_id,
                    "question_id": f.question_id,
                    "sort_order": f.sort_order,
                    "config": f.config.model_dump(mode="json"),
                    "dependency_question_id": dependency.dependency_id if dependency else None,
                    "dependency_operator": str(dependency.condition.operator) if dependency else None,
                    "dependency_params": dependency.condition.params if dependency else None,
                },
            )
        # Removed topics go last so fields moved out of them are not cascaded away.
        Topic.objects.filter(template=stored).exclude(id__in=topic_ids).delete()

        logger.info("template_saved", template_id=str(stored.id), template_version=stored.version)
        return self.get_template(stored.id)

    @transaction.atomic
    def create_template(
        self,
        name: str,
        description: str = "",
        category: TemplateCategory = TemplateCategory.PROPOSAL_QUESTIONARY,
        topics: list[TopicSchema] | None = None,
    ) -> TemplateSchema:
        """Create a template, empty or already filled with ``topics``, in one transaction."""
        template = Template.objects.create(name=name, description=description, category=category)
        logger.info("template_created", template_id=str(template.id), category=category)
        created = self.get_template(template.id)
        if topics:
            return self.save_template(created.model_copy(update={"topics": topics}, deep=True))
        return created

    @transaction.atomic
    def delete_template(self, template_id: UUID) -> None:
        """Delete a template that no questionary uses."""
        try:
            template = Template.objects.select_for_update().get(pk=template_id)
        except Template.DoesNotExist:
            raise TemplateNotFoundError(f"Template {template_id} does not exist.")
        if template.questionaries.exists():
            raise TemplateInUseError(f"Template '{template.name}' is used by existing questionaries.")
        template.delete()
        logger.info("template_deleted", template_id=str(template_id))

    def get_question(self, question_id: str) -> QuestionSchema:
        """Load a question."""
        try:
            return question_to_schema(Question.objects.get(pk=question_id))
        except Question.DoesNotExist:
            raise QuestionNotFoundError(f"Question '{question_id}' does not exist.")

    def create_question(self, question: QuestionSchema) -> QuestionSchema:
        """Persist a new question."""
        created = Question.objects.create(
            id=question.question_id,
            data_type=question.data_type,
            natural_key=question.natural_key,
            question=question.question,
            default_config=question.default_config.model_dump(mode="json"),
        )
        logger.info("question_created", question_id=created.id, data_type=created.data_type)
        return question_to_schema(created)


# ---- Questionary store ----


class DjangoQuestionaryStore:
    """Questionary and answer store backed by the Django ORM."""

    def _get(self, questionary_id: UUID) -> Questionary:
        try:
            return Questionary.objects.get(pk=questionary_id)
        except Questionary.DoesNotExist:
            raise QuestionaryNotFoundError(f"Questionary {questionary_id} does not exist.")

    def get_questionary(self, questionary_id: UUID) -> QuestionarySchema:
        """Load a questionary."""
        return questionary_to_schema(self._get(questionary_id))

    def create_questionary(self, template_id: UUID, principal: t.Any = None) -> QuestionarySchema:
        """Instantiate a template as a new questionary owned by ``principal`` when it is a user."""
        created_by = principal if isinstance(principal, get_user_model()) else None
        questionary = Questionary.objects.create(template_id=template_id, created_by=created_by)
        logger.info("questionary_created", questionary_id=str(questionary.id), template_id=str(template_id))
        return questionary_to_schema(questionary)

    def get_answers(self, questionary_id: UUID) -> dict[str, AnswerSchema]:
        """All stored answers keyed by question id."""
        return {
            answer.question_id: answer_to_schema(answer)
            for answer in Answer.objects.filter(questionary_id=questionary_id)
        }

    def set_answer(self, questionary_id: UUID, question_id: str, value: t.Any) -> AnswerSchema:
        """Create or replace one answer."""
        questionary = self._get(questionary_id)
        answer, _ = Answer.objects.update_or_create(
            questionary=questionary, question_id=question_id, defaults={"value": value}
        )
        return answer_to_schema(answer)

    @transaction.atomic
    def set_answers(self, questionary_id: UUID, values: Mapping[str, t.Any]) -> list[AnswerSchema]:
        """Create or replace several answers in one transaction."""
        return [self.set_answer(questionary_id, question_id, value) for question_id, value in values.items()]
