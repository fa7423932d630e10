"""Structural edits of a template snapshot.

``TemplateEditor`` works on a deep copy of the snapshot it is given. Every operation
validates completely before touching the copy, so a rejected edit leaves both the copy and
the original untouched; the caller persists ``editor.template`` only after success.
"""

from uuid import UUID

import structlog

from .conditions import DEFAULT_CONDITION_EVALUATOR, ConditionEvaluator
from .dependency_graph import FieldDependencyGraph
from .enums import DataType
from .exceptions import (
    AnswerValidationError,
    CyclicDependencyError,
    DependencyTargetInUseError,
    DependencyTargetNotFoundError,
    InvalidDependencyError,
    InvalidOrderError,
    TemplateIntegrityError,
    TopicNotEmptyError,
    UnsupportedOperatorError,
)
from .field_config import FieldConfig
from .schema import (
    FieldDependencySchema,
    QuestionSchema,
    QuestionTemplateRelationSchema,
    TemplateSchema,
    TopicSchema,
)
from .values import coerce_value

logger = structlog.get_logger(__name__)


class TemplateEditor:
    def __init__(self, template: TemplateSchema, evaluator: ConditionEvaluator = DEFAULT_CONDITION_EVALUATOR) -> None:
        """Start editing a copy of ``template``."""
        self.template = template.model_copy(deep=True)
        self.evaluator = evaluator

    # ---- Lookups ----

    def _get_topic(self, topic_id: UUID) -> TopicSchema:
        topic = self.template.find_topic(topic_id)
        if topic is None:
            raise TemplateIntegrityError(f"Topic {topic_id} does not belong to template {self.template.id}.")
        return topic

    def _get_field(self, field_id: UUID) -> QuestionTemplateRelationSchema:
        field = self.template.find_field(field_id)
        if field is None:
            raise TemplateIntegrityError(f"Field {field_id} does not belong to template {self.template.id}.")
        return field

    def _sorted_topics(self) -> list[TopicSchema]:
        return sorted(self.template.topics, key=lambda tp: tp.sort_order)

    @staticmethod
    def _check_sort_order(sort_order: int) -> None:
        if sort_order < 0:
            raise InvalidOrderError(f"Sort order cannot be negative, got {sort_order}.")

    # ---- Re-densification ----

    def _densify_topics(self, ordered: list[TopicSchema] | None = None) -> None:
        ordered = ordered if ordered is not None else self._sorted_topics()
        for index, topic in enumerate(ordered):
            topic.sort_order = index
        self.template.topics = ordered

    @staticmethod
    def _densify_fields(topic: TopicSchema, ordered: list[QuestionTemplateRelationSchema] | None = None) -> None:
        ordered = ordered if ordered is not None else sorted(topic.fields, key=lambda f: f.sort_order)
        for index, field in enumerate(ordered):
            field.sort_order = index
            field.topic_id = topic.id
        topic.fields = ordered

    # ---- Topics ----

    def create_topic(self, sort_order: int, title: str = "New topic", is_enabled: bool = True) -> TopicSchema:
        """Insert a topic at ``sort_order``, shifting later topics down by one.

        A position past the end appends the topic.
        """
        self._check_sort_order(sort_order)
        ordered = self._sorted_topics()
        topic = TopicSchema(title=title, is_enabled=is_enabled)
        ordered.insert(min(sort_order, len(ordered)), topic)
        self._densify_topics(ordered)
        logger.debug("template_topic_created", template_id=str(self.template.id), topic_id=str(topic.id))
        return topic

    def update_topic(self, topic_id: UUID, title: str | None = None, is_enabled: bool | None = None) -> TopicSchema:
        """Update the given attributes of a topic, leaving the others unchanged."""
        topic = self._get_topic(topic_id)
        if title is not None:
            topic.title = title
        if is_enabled is not None:
            topic.is_enabled = is_enabled
        return topic

    def delete_topic(self, topic_id: UUID) -> None:
        """Delete an empty topic and close the gap it leaves.

        Raises:
            TopicNotEmptyError: If the topic still holds fields.
        """
        topic = self._get_topic(topic_id)
        if topic.fields:
            raise TopicNotEmptyError(
                f"Topic '{topic.title}' still holds {len(topic.fields)} question(s); move or delete them first."
            )
        self._densify_topics([tp for tp in self._sorted_topics() if tp.id != topic_id])

    def reorder_topics(self, ordered_topic_ids: list[UUID]) -> None:
        """Assign sort orders 0..n-1 following ``ordered_topic_ids``.

        Raises:
            InvalidOrderError: If the ids are not a permutation of the template's topic ids.
        """
        current_ids = [topic.id for topic in self.template.topics]
        if len(ordered_topic_ids) != len(current_ids) or set(ordered_topic_ids) != set(current_ids):
            raise InvalidOrderError("Topic order must list every topic of the template exactly once.")
        by_id = {topic.id: topic for topic in self.template.topics}
        self._densify_topics([by_id[topic_id] for topic_id in ordered_topic_ids])

    # ---- Fields ----

    def create_field(
        self, topic_id: UUID, question: QuestionSchema, sort_order: int | None = None
    ) -> QuestionTemplateRelationSchema:
        """Place ``question`` in a topic, at the end unless ``sort_order`` is given.

        The field starts with a copy of the question's default config and no dependency.

        Raises:
            TemplateIntegrityError: If the question is already part of the template.
        """
        topic = self._get_topic(topic_id)
        if sort_order is not None:
            self._check_sort_order(sort_order)
        if question.question_id in self.template.question_ids():
            raise TemplateIntegrityError(f"Question '{question.question_id}' is already part of this template.")

        field = QuestionTemplateRelationSchema(
            question=question.model_copy(deep=True),
            topic_id=topic.id,
            config=question.default_config.model_copy(deep=True),
        )
        ordered = sorted(topic.fields, key=lambda f: f.sort_order)
        ordered.insert(len(ordered) if sort_order is None else min(sort_order, len(ordered)), field)
        self._densify_fields(topic, ordered)
        return field

    def delete_field(self, field_id: UUID) -> None:
        """Remove a field from the template.

        Answers to the question are kept in storage; they simply stop being rendered.

        Raises:
            DependencyTargetInUseError: If other fields depend on the field's question.
        """
        field = self._get_field(field_id)
        graph = FieldDependencyGraph.from_template(self.template)
        dependents = graph.direct_dependents_of(field.question_id)
        if dependents:
            raise DependencyTargetInUseError(
                f"Question '{field.question_id}' is a dependency of: {', '.join(sorted(dependents))}."
            )
        topic = self._get_topic(field.topic_id)
        self._densify_fields(topic, [f for f in sorted(topic.fields, key=lambda f: f.sort_order) if f.id != field_id])

    def move_question_to_topic(self, field_id: UUID, target_topic_id: UUID, sort_order: int) -> None:
        """Move a field to ``sort_order`` in a topic, which may be its own topic."""
        field = self._get_field(field_id)
        target = self._get_topic(target_topic_id)
        self._check_sort_order(sort_order)
        source = self._get_topic(field.topic_id)

        remaining = [f for f in sorted(source.fields, key=lambda f: f.sort_order) if f.id != field_id]
        if source.id == target.id:
            remaining.insert(min(sort_order, len(remaining)), field)
            self._densify_fields(source, remaining)
            return

        self._densify_fields(source, remaining)
        ordered = sorted(target.fields, key=lambda f: f.sort_order)
        ordered.insert(min(sort_order, len(ordered)), field)
        self._densify_fields(target, ordered)

    def set_dependency(self, field_id: UUID, dependency: FieldDependencySchema | None) -> None:
        """Make a field conditional on another question's answer, or unconditional with ``None``.

        Raises:
            DependencyTargetNotFoundError: If the target question is not part of the template.
            InvalidDependencyError: If the target is display-only, the operator is unknown
                or the params do not fit the target's data type.
            CyclicDependencyError: If the dependency would close a loop.
        """
        field = self._get_field(field_id)
        if dependency is None:
            field.dependency = None
            return

        target = self.template.find_field_by_question(dependency.dependency_id)
        if target is None:
            raise DependencyTargetNotFoundError(
                f"Question '{dependency.dependency_id}' is not part of template {self.template.id}."
            )
        if target.data_type == DataType.EMBELLISHMENT:
            raise InvalidDependencyError(f"Question '{dependency.dependency_id}' is display-only.")
        try:
            self.evaluator.get_check(dependency.condition.operator)
            coerce_value(target.data_type, dependency.condition.params)
        except (UnsupportedOperatorError, AnswerValidationError) as e:
            raise InvalidDependencyError(str(e)) from e

        graph = FieldDependencyGraph.from_template(self.template)
        if graph.would_create_cycle(field.question_id, dependency):
            raise CyclicDependencyError(
                f"Making '{field.question_id}' depend on '{dependency.dependency_id}' creates a cycle."
            )
        field.dependency = dependency.model_copy(deep=True)

    def update_field_config(self, field_id: UUID, config: FieldConfig) -> QuestionTemplateRelationSchema:
        """Replace the template-specific config of a field.

        Raises:
            TemplateIntegrityError: If the config is of another data type than the question.
        """
        field = self._get_field(field_id)
        if config.data_type != field.data_type:
            raise TemplateIntegrityError(f"Config of type {config.data_type} does not fit a {field.data_type} question.")
        field.config = config.model_copy(deep=True)
        return field

    # ---- Integrity ----

    def check_integrity(self) -> None:
        """Verify the invariants every persisted template must hold.

        Raises:
            TemplateIntegrityError: If sort orders are not dense, a field's topic id is
                inconsistent, a question is placed twice or a dependency target is missing.
            InvalidDependencyError: If a dependency uses an unknown operator; clearing or
                replacing that dependency is the only edit that can then be saved.
            CyclicDependencyError: If dependencies form a loop.
        """
        if sorted(tp.sort_order for tp in self.template.topics) != list(range(len(self.template.topics))):
            raise TemplateIntegrityError("Topic sort orders must be 0..n-1 without gaps or duplicates.")

        seen: set[str] = set()
        for topic in self.template.topics:
            if sorted(f.sort_order for f in topic.fields) != list(range(len(topic.fields))):
                raise TemplateIntegrityError(f"Field sort orders in topic '{topic.title}' must be 0..n-1.")
            for f in topic.fields:
                if f.topic_id != topic.id:
                    raise TemplateIntegrityError(f"Field {f.id} claims topic {f.topic_id} but lives in {topic.id}.")
                if f.question_id in seen:
                    raise TemplateIntegrityError(f"Question '{f.question_id}' is placed twice.")
                seen.add(f.question_id)

        for f in self.template.iter_fields():
            if f.dependency is None:
                continue
            if f.dependency.dependency_id not in seen:
                raise TemplateIntegrityError(
                    f"Question '{f.question_id}' depends on missing question '{f.dependency.dependency_id}'."
                )
            try:
                self.evaluator.get_check(f.dependency.condition.operator)
            except UnsupportedOperatorError as e:
                raise InvalidDependencyError(f"Field {f.id} ('{f.question_id}'): {e}") from e
        cycles = FieldDependencyGraph.from_template(self.template).find_cycles()
        if cycles:
            raise CyclicDependencyError(f"Dependency cycle between: {', '.join(sorted(cycles[0]))}.")
