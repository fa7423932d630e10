import secrets
import typing as t
from collections.abc import Callable
from uuid import UUID

import structlog

from ..conditions import DEFAULT_CONDITION_EVALUATOR, ConditionEvaluator
from ..enums import Action
from ..exceptions import NotAuthorizedError
from ..field_config import FieldConfig
from ..protocols import Authorizer, TemplateStore
from ..schema import (
    FieldDependencySchema,
    QuestionCreateSchema,
    QuestionSchema,
    QuestionTemplateRelationSchema,
    TemplateCreateSchema,
    TemplateFilterSchema,
    TemplateSchema,
    TemplateUpdateSchema,
    TopicSchema,
)
from ..template_editor import TemplateEditor

logger = structlog.get_logger(__name__)


class TemplateService:
    """Authorized reads and structural edits of templates.

    Every edit loads a snapshot, applies one ``TemplateEditor`` operation to it, checks the
    template's integrity and saves it against the version it was read at. A rejected edit
    writes nothing.
    """

    def __init__(
        self,
        template_store: TemplateStore,
        authorizer: Authorizer,
        evaluator: ConditionEvaluator = DEFAULT_CONDITION_EVALUATOR,
    ) -> None:
        """Initialize the template service."""
        self.template_store = template_store
        self.authorizer = authorizer
        self.evaluator = evaluator

    def _authorize(self, principal: t.Any, action: Action, resource_id: UUID | None = None) -> None:
        if not self.authorizer.has_permission(principal, action, resource_id):
            logger.warning(
                "questionary_permission_denied",
                action=action,
                resource_id=str(resource_id) if resource_id else None,
            )
            raise NotAuthorizedError(f"Not allowed to {action.label.lower()}.")

    def _edit(
        self, principal: t.Any, template_id: UUID, operation: str, apply: Callable[[TemplateEditor], t.Any]
    ) -> TemplateSchema:
        self._authorize(principal, Action.EDIT_TEMPLATE, template_id)
        template = self.template_store.get_template(template_id)
        editor = TemplateEditor(template, self.evaluator)
        apply(editor)
        editor.check_integrity()
        saved = self.template_store.save_template(editor.template, expected_version=template.version)
        logger.info(
            "template_edited", template_id=str(template_id), operation=operation, template_version=saved.version
        )
        return saved

    # ---- Templates ----

    def get_template(self, principal: t.Any, template_id: UUID) -> TemplateSchema:
        """Load a template."""
        self._authorize(principal, Action.VIEW_TEMPLATE, template_id)
        return self.template_store.get_template(template_id)

    def get_templates(self, principal: t.Any, filters: TemplateFilterSchema | None = None) -> list[TemplateSchema]:
        """List templates, optionally filtered by archive flag and category."""
        self._authorize(principal, Action.VIEW_TEMPLATE)
        return self.template_store.get_templates(filters or TemplateFilterSchema())

    def create_template(self, principal: t.Any, payload: TemplateCreateSchema) -> TemplateSchema:
        """Create an empty template."""
        self._authorize(principal, Action.EDIT_TEMPLATE)
        return self.template_store.create_template(payload.name, payload.description, payload.category)

    def update_template(self, principal: t.Any, template_id: UUID, payload: TemplateUpdateSchema) -> TemplateSchema:
        """Update a template's name, description or archive flag."""
        self._authorize(principal, Action.EDIT_TEMPLATE, template_id)
        template = self.template_store.get_template(template_id)
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        saved = self.template_store.save_template(template.model_copy(update=changes), expected_version=template.version)
        logger.info("template_updated", template_id=str(template_id), fields=sorted(changes))
        return saved

    def clone_template(self, principal: t.Any, template_id: UUID, name: str | None = None) -> TemplateSchema:
        """Copy a template with new topic and field ids.

        The copy places the same shared questions, with the same configs and dependencies.
        """
        self._authorize(principal, Action.VIEW_TEMPLATE, template_id)
        self._authorize(principal, Action.EDIT_TEMPLATE)
        source = self.template_store.get_template(template_id)

        topics: list[TopicSchema] = []
        for topic in source.topics:
            new_topic = TopicSchema(title=topic.title, sort_order=topic.sort_order, is_enabled=topic.is_enabled)
            new_topic.fields = [
                QuestionTemplateRelationSchema(
                    question=f.question,
                    topic_id=new_topic.id,
                    sort_order=f.sort_order,
                    config=f.config,
                    dependency=f.dependency,
                )
                for f in topic.fields
            ]
            topics.append(new_topic)

        saved = self.template_store.create_template(
            name or f"Copy of {source.name}", source.description, source.category, topics=topics
        )
        logger.info("template_cloned", source_template_id=str(template_id), template_id=str(saved.id))
        return saved

    def delete_template(self, principal: t.Any, template_id: UUID) -> None:
        """Delete a template that no questionary uses."""
        self._authorize(principal, Action.EDIT_TEMPLATE, template_id)
        self.template_store.delete_template(template_id)

    # ---- Questions ----

    def create_question(self, principal: t.Any, payload: QuestionCreateSchema) -> QuestionSchema:
        """Create a new question that any template can place."""
        self._authorize(principal, Action.EDIT_TEMPLATE)
        question = QuestionSchema(
            question_id=f"{payload.data_type.lower()}_{secrets.token_hex(6)}",
            data_type=payload.data_type,
            natural_key=payload.natural_key,
            question=payload.question,
            default_config=payload.default_config,
        )
        return self.template_store.create_question(question)

    def add_question_to_template(
        self,
        principal: t.Any,
        template_id: UUID,
        topic_id: UUID,
        question_id: str,
        sort_order: int | None = None,
    ) -> TemplateSchema:
        """Place an existing question in a topic of the template."""
        self._authorize(principal, Action.EDIT_TEMPLATE, template_id)
        question = self.template_store.get_question(question_id)
        return self._edit(
            principal,
            template_id,
            "add_question_to_template",
            lambda editor: editor.create_field(topic_id, question, sort_order),
        )

    # ---- Structural edits ----

    def create_topic(
        self, principal: t.Any, template_id: UUID, sort_order: int, title: str = "New topic", is_enabled: bool = True
    ) -> TemplateSchema:
        """Insert a topic at ``sort_order``."""
        return self._edit(
            principal,
            template_id,
            "create_topic",
            lambda editor: editor.create_topic(sort_order, title=title, is_enabled=is_enabled),
        )

    def update_topic(
        self,
        principal: t.Any,
        template_id: UUID,
        topic_id: UUID,
        title: str | None = None,
        is_enabled: bool | None = None,
    ) -> TemplateSchema:
        return self._edit(
            principal,
            template_id,
            "update_topic",
            lambda editor: editor.update_topic(topic_id, title=title, is_enabled=is_enabled),
        )

    def delete_topic(self, principal: t.Any, template_id: UUID, topic_id: UUID) -> TemplateSchema:
        return self._edit(principal, template_id, "delete_topic", lambda editor: editor.delete_topic(topic_id))

    def reorder_topics(self, principal: t.Any, template_id: UUID, ordered_topic_ids: list[UUID]) -> TemplateSchema:
        return self._edit(
            principal, template_id, "reorder_topics", lambda editor: editor.reorder_topics(ordered_topic_ids)
        )

    def delete_field(self, principal: t.Any, template_id: UUID, field_id: UUID) -> TemplateSchema:
        """Remove a question from the template. Stored answers to it are kept."""
        return self._edit(principal, template_id, "delete_field", lambda editor: editor.delete_field(field_id))

    def move_question_to_topic(
        self, principal: t.Any, template_id: UUID, field_id: UUID, target_topic_id: UUID, sort_order: int
    ) -> TemplateSchema:
        return self._edit(
            principal,
            template_id,
            "move_question_to_topic",
            lambda editor: editor.move_question_to_topic(field_id, target_topic_id, sort_order),
        )

    def set_dependency(
        self, principal: t.Any, template_id: UUID, field_id: UUID, dependency: FieldDependencySchema | None
    ) -> TemplateSchema:
        """Set or clear the dependency of a field."""
        return self._edit(
            principal, template_id, "set_dependency", lambda editor: editor.set_dependency(field_id, dependency)
        )

    def update_field_config(
        self, principal: t.Any, template_id: UUID, field_id: UUID, config: FieldConfig
    ) -> TemplateSchema:
        return self._edit(
            principal,
            template_id,
            "update_field_config",
            lambda editor: editor.update_field_config(field_id, config),
        )
