"""Protocol definitions for the collaborators of the questionary engine.

The engine reads and writes templates, questionaries and answers only through these
protocols, and asks an ``Authorizer`` before every operation. ``questionaries.stores`` and
``questionaries.authorization`` provide the Django implementations.
"""

import typing as t
from collections.abc import Mapping
from uuid import UUID

from .enums import Action, TemplateCategory
from .schema import (
    AnswerSchema,
    QuestionarySchema,
    QuestionSchema,
    TemplateFilterSchema,
    TemplateSchema,
    TopicSchema,
)


class TemplateStore(t.Protocol):
    """Persistence of templates and of the questions they share."""

    def get_template(self, template_id: UUID) -> TemplateSchema:
        """Load a consistent snapshot of a template.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """
        ...

    def get_templates(self, filters: TemplateFilterSchema) -> list[TemplateSchema]:
        """List templates matching the filters."""
        ...

    def save_template(self, template: TemplateSchema, expected_version: int | None = None) -> TemplateSchema:
        """Atomically replace a template's attributes, topics and fields with the snapshot.

        Args:
            template: The edited snapshot.
            expected_version: The version the snapshot was read at. When given and the
                stored version differs, nothing is written.

        Returns:
            The stored snapshot, with its version bumped.

        Raises:
            StaleTemplateError: If the stored template changed since ``expected_version``.
        """
        ...

    def create_template(
        self, name: str, description: str, category: TemplateCategory, topics: list[TopicSchema] | None = None
    ) -> TemplateSchema:
        """Create a template, empty or filled with ``topics``, atomically."""
        ...

    def delete_template(self, template_id: UUID) -> None:
        """Delete a template with its topics and fields.

        Raises:
            TemplateInUseError: If questionaries reference the template.
        """
        ...

    def get_question(self, question_id: str) -> QuestionSchema:
        """Load a question.

        Raises:
            QuestionNotFoundError: If the question does not exist.
        """
        ...

    def create_question(self, question: QuestionSchema) -> QuestionSchema:
        """Persist a new question."""
        ...


class QuestionaryStore(t.Protocol):
    """Persistence of questionaries and their answers."""

    def get_questionary(self, questionary_id: UUID) -> QuestionarySchema:
        """Load a questionary.

        Raises:
            QuestionaryNotFoundError: If the questionary does not exist.
        """
        ...

    def create_questionary(self, template_id: UUID, principal: t.Any = None) -> QuestionarySchema:
        """Instantiate a template as a new questionary."""
        ...

    def get_answers(self, questionary_id: UUID) -> dict[str, AnswerSchema]:
        """All stored answers of a questionary keyed by question id, including orphaned ones."""
        ...

    def set_answer(self, questionary_id: UUID, question_id: str, value: t.Any) -> AnswerSchema:
        """Create or replace one answer."""
        ...

    def set_answers(self, questionary_id: UUID, values: Mapping[str, t.Any]) -> list[AnswerSchema]:
        """Create or replace several answers at once, all or nothing."""
        ...


class Authorizer(t.Protocol):
    """Yes/no decisions about what a principal may do."""

    def has_permission(self, principal: t.Any, action: Action, resource_id: UUID | None = None) -> bool:
        """Whether ``principal`` may perform ``action`` on the resource."""
        ...
