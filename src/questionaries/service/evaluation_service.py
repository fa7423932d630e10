import typing as t
from collections.abc import Mapping
from uuid import UUID

import structlog
from django.conf import settings

from ..conditions import DEFAULT_CONDITION_EVALUATOR, ConditionEvaluator
from ..dependency_graph import Activation, FieldDependencyGraph
from ..enums import Action
from ..exceptions import AnswerValidationError, ArchivedTemplateError, NotAuthorizedError
from ..protocols import Authorizer, QuestionaryStore, TemplateStore
from ..schema import (
    AnswerSchema,
    AnswerSubmissionResultSchema,
    QuestionaryEvaluationSchema,
    QuestionarySchema,
    QuestionEvaluationSchema,
    TemplateSchema,
    TopicEvaluationSchema,
    TopicSummarySchema,
)
from ..validation import is_answer_complete, validate_answer

logger = structlog.get_logger(__name__)


def resolve_activation(
    template: TemplateSchema, answers: Mapping[str, t.Any], evaluator: ConditionEvaluator
) -> Activation:
    """Resolve which questions of a template are active for raw answer values.

    Questions in disabled topics are never active.
    """
    suppressed = {f.question_id for topic in template.topics if not topic.is_enabled for f in topic.fields}
    return FieldDependencyGraph.from_template(template).resolve(answers, evaluator, suppressed=suppressed)


def build_evaluation(
    questionary: QuestionarySchema,
    template: TemplateSchema,
    answers: Mapping[str, AnswerSchema],
    evaluator: ConditionEvaluator = DEFAULT_CONDITION_EVALUATOR,
) -> QuestionaryEvaluationSchema:
    """Compute the rendered state of a questionary.

    Enabled topics are listed in sort order, each with its fields in sort order. Every
    field carries its stored answer (kept even while the field is inactive), whether it is
    currently active and, when it could not be evaluated, why. A topic is completed when
    every active required field holds a non-empty valid answer.

    Args:
        questionary: The questionary being evaluated.
        template: The template snapshot the questionary instantiates.
        answers: All stored answers keyed by question id, including orphaned ones.
        evaluator: The condition evaluator.
    """
    activation = resolve_activation(template, {qid: a.value for qid, a in answers.items()}, evaluator)
    for question_id, diagnostic in activation.diagnostics.items():
        logger.error(
            "questionary_evaluation_diagnostic",
            questionary_id=str(questionary.id),
            template_id=str(template.id),
            question_id=question_id,
            diagnostic=diagnostic,
        )

    topics: list[TopicEvaluationSchema] = []
    for topic in sorted(template.topics, key=lambda tp: tp.sort_order):
        if not topic.is_enabled:
            continue
        questions = [
            QuestionEvaluationSchema(
                field=f,
                answer=answers.get(f.question_id),
                is_active=f.question_id in activation.active,
                diagnostic=activation.diagnostics.get(f.question_id),
            )
            for f in sorted(topic.fields, key=lambda f: f.sort_order)
        ]
        is_completed = all(
            is_answer_complete(q.field, q.answer.value if q.answer else None)
            for q in questions
            if q.is_active and q.field.config.required
        )
        topics.append(
            TopicEvaluationSchema(
                topic=TopicSummarySchema(
                    id=topic.id, title=topic.title, sort_order=topic.sort_order, is_enabled=topic.is_enabled
                ),
                is_completed=is_completed,
                questions=questions,
            )
        )

    return QuestionaryEvaluationSchema(
        questionary_id=questionary.id,
        template_id=template.id,
        topics=topics,
        orphaned_question_ids=sorted(set(answers) - template.question_ids()),
        diagnostics=dict(activation.diagnostics),
    )


class QuestionaryEvaluationService:
    def __init__(
        self,
        template_store: TemplateStore,
        questionary_store: QuestionaryStore,
        authorizer: Authorizer,
        evaluator: ConditionEvaluator = DEFAULT_CONDITION_EVALUATOR,
        reject_inactive_answers: bool | None = None,
    ) -> None:
        """Initialize the evaluation service.

        Args:
            template_store: Where templates are read from.
            questionary_store: Where questionaries and answers are read and written.
            authorizer: Asked before every operation.
            evaluator: The condition evaluator.
            reject_inactive_answers: Whether answers to hidden questions are refused.
                Defaults to ``settings.QUESTIONARY_REJECT_INACTIVE_ANSWERS``.
        """
        self.template_store = template_store
        self.questionary_store = questionary_store
        self.authorizer = authorizer
        self.evaluator = evaluator
        if reject_inactive_answers is None:
            reject_inactive_answers = settings.QUESTIONARY_REJECT_INACTIVE_ANSWERS
        self.reject_inactive_answers = reject_inactive_answers

    def _authorize(self, principal: t.Any, action: Action, resource_id: UUID | None) -> None:
        if not self.authorizer.has_permission(principal, action, resource_id):
            logger.warning(
                "questionary_permission_denied",
                action=action,
                resource_id=str(resource_id) if resource_id else None,
            )
            raise NotAuthorizedError(f"Not allowed to {action.label.lower()}.")

    def _load(self, questionary_id: UUID) -> tuple[QuestionarySchema, TemplateSchema, dict[str, AnswerSchema]]:
        questionary = self.questionary_store.get_questionary(questionary_id)
        template = self.template_store.get_template(questionary.template_id)
        return questionary, template, self.questionary_store.get_answers(questionary_id)

    def create_questionary(self, principal: t.Any, template_id: UUID) -> QuestionarySchema:
        """Start a new questionary from a template.

        Raises:
            ArchivedTemplateError: If the template is archived.
        """
        self._authorize(principal, Action.VIEW_TEMPLATE, template_id)
        template = self.template_store.get_template(template_id)
        if template.is_archived:
            raise ArchivedTemplateError(f"Template '{template.name}' is archived.")
        return self.questionary_store.create_questionary(template_id, principal)

    def evaluate(self, principal: t.Any, questionary_id: UUID) -> QuestionaryEvaluationSchema:
        """Compute the current rendered state of a questionary."""
        self._authorize(principal, Action.VIEW_QUESTIONARY, questionary_id)
        questionary, template, answers = self._load(questionary_id)
        return build_evaluation(questionary, template, answers, self.evaluator)

    def answer_question(
        self, principal: t.Any, questionary_id: UUID, question_id: str, value: t.Any
    ) -> AnswerSubmissionResultSchema:
        """Validate and store one answer, then recompute the questionary.

        Raises:
            AnswerValidationError: If the question is not part of the template, is
                display-only or hidden, or the value does not fit its config.
        """
        self._authorize(principal, Action.ANSWER_QUESTIONARY, questionary_id)
        questionary, template, answers = self._load(questionary_id)
        return self._submit(questionary, template, answers, {question_id: value})

    def answer_topic(
        self, principal: t.Any, questionary_id: UUID, topic_id: UUID, values: Mapping[str, t.Any]
    ) -> AnswerSubmissionResultSchema:
        """Validate every answer of a topic, then store them all at once.

        Raises:
            AnswerValidationError: If the topic is not part of the template, a question
                does not belong to the topic, or any answer is rejected. Nothing is stored.
        """
        self._authorize(principal, Action.ANSWER_QUESTIONARY, questionary_id)
        questionary, template, answers = self._load(questionary_id)
        topic = template.find_topic(topic_id)
        if topic is None:
            raise AnswerValidationError(f"Topic {topic_id} is not part of template {template.id}.")
        topic_question_ids = {f.question_id for f in topic.fields}
        foreign = sorted(set(values) - topic_question_ids)
        if foreign:
            raise AnswerValidationError(f"Questions do not belong to topic '{topic.title}': {', '.join(foreign)}.")
        return self._submit(questionary, template, answers, values)

    def _submit(
        self,
        questionary: QuestionarySchema,
        template: TemplateSchema,
        answers: dict[str, AnswerSchema],
        values: Mapping[str, t.Any],
    ) -> AnswerSubmissionResultSchema:
        current = {qid: a.value for qid, a in answers.items()}
        storable: dict[str, t.Any] = {}
        for question_id, value in values.items():
            field = template.find_field_by_question(question_id)
            if field is None:
                raise AnswerValidationError(f"Question '{question_id}' is not part of template {template.id}.")
            storable[question_id] = validate_answer(field, value)

        before = resolve_activation(template, current, self.evaluator)
        after = resolve_activation(template, {**current, **storable}, self.evaluator)
        if self.reject_inactive_answers:
            hidden = sorted(qid for qid in storable if qid not in after.active)
            if hidden:
                raise AnswerValidationError(f"Questions are not currently shown: {', '.join(hidden)}.")

        if len(storable) == 1:
            ((question_id, value),) = storable.items()
            saved = [self.questionary_store.set_answer(questionary.id, question_id, value)]
        else:
            saved = self.questionary_store.set_answers(questionary.id, storable)

        graph = FieldDependencyGraph.from_template(template)
        affected = set().union(*(graph.dependents_of(qid) for qid in storable))
        toggled = sorted(qid for qid in affected if (qid in before.active) != (qid in after.active))
        logger.info(
            "questionary_answer_saved",
            questionary_id=str(questionary.id),
            question_ids=sorted(storable),
            toggled_question_ids=toggled,
        )

        evaluation = build_evaluation(
            questionary, template, self.questionary_store.get_answers(questionary.id), self.evaluator
        )
        return AnswerSubmissionResultSchema(answers=saved, evaluation=evaluation, toggled_question_ids=toggled)
