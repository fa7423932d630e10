import typing as t

from django.conf import settings
from django.db import models
from django.db.models import Prefetch

from common.models import TimeStampedModel

from .enums import DataType, Operator, TemplateCategory

# ---- Question model ----


class Question(TimeStampedModel):
    """A question shared by any number of templates."""

    id = models.CharField(primary_key=True, max_length=128, editable=False)  # type: ignore[assignment]
    data_type = models.CharField(choices=DataType.choices, max_length=20, db_index=True)
    natural_key = models.CharField(max_length=255, unique=True)
    question = models.TextField(blank=True, default="")
    default_config = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["natural_key"]

    def __str__(self) -> str:
        return self.natural_key


# ---- Template model ----


class TemplateQueryset(models.QuerySet["Template"]):
    """Template queryset."""

    def with_structure(self) -> t.Self:
        """Prefetch topics and their fields, in rendering order."""
        return self.prefetch_related(
            Prefetch(
                "topics",
                queryset=Topic.objects.order_by("sort_order").prefetch_related(
                    Prefetch(
                        "fields",
                        queryset=QuestionTemplateRelation.objects.select_related("question").order_by("sort_order"),
                    )
                ),
            )
        )


class TemplateManager(models.Manager["Template"]):
    def get_queryset(self) -> TemplateQueryset:
        """Get template queryset."""
        return TemplateQueryset(self.model)

    def with_structure(self) -> TemplateQueryset:
        """With topics and fields."""
        return self.get_queryset().with_structure()


class Template(TimeStampedModel):
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")
    category = models.CharField(
        choices=TemplateCategory.choices, max_length=32, default=TemplateCategory.PROPOSAL_QUESTIONARY, db_index=True
    )
    is_archived = models.BooleanField(
        default=False, help_text="Archived templates cannot start new questionaries.", db_index=True
    )
    version = models.PositiveIntegerField(default=0, help_text="Bumped on every structural save.")

    objects = TemplateManager()

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


# ---- Topic model ----


class Topic(TimeStampedModel):
    template = models.ForeignKey(Template, on_delete=models.CASCADE, related_name="topics")
    title = models.CharField(max_length=255, blank=True, default="")
    sort_order = models.PositiveIntegerField(default=0)
    is_enabled = models.BooleanField(default=True)

    class Meta:
        ordering = ["sort_order"]


# ---- QuestionTemplateRelation model ----


class QuestionTemplateRelation(TimeStampedModel):
    """The placement of a question in a template topic, with its own config and dependency."""

    template = models.ForeignKey(Template, on_delete=models.CASCADE, related_name="fields")
    topic = models.ForeignKey(Topic, on_delete=models.CASCADE, related_name="fields")
    question = models.ForeignKey(Question, on_delete=models.PROTECT, related_name="template_relations")
    sort_order = models.PositiveIntegerField(default=0)
    config = models.JSONField(default=dict, blank=True)
    dependency_question = models.ForeignKey(
        Question,
        on_delete=models.PROTECT,
        related_name="dependent_relations",
        null=True,
        blank=True,
        help_text="The question whose answer decides whether this one is shown.",
    )
    dependency_operator = models.CharField(max_length=16, choices=Operator.choices, null=True, blank=True)
    dependency_params = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ["sort_order"]
        constraints = [
            models.UniqueConstraint(fields=["template", "question"], name="unique_question_per_template"),
        ]
        indexes = [
            models.Index(fields=["template", "dependency_question"], name="qtr_template_dependency_idx"),
        ]


# ---- Questionary model ----


class Questionary(TimeStampedModel):
    """An instance of a template being filled in, e.g. for one proposal."""

    template = models.ForeignKey(Template, on_delete=models.PROTECT, related_name="questionaries")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="questionaries",
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-created_at"]


# ---- Answer model ----


class Answer(TimeStampedModel):
    questionary = models.ForeignKey(Questionary, on_delete=models.CASCADE, related_name="answers")
    question = models.ForeignKey(Question, on_delete=models.PROTECT, related_name="answers")
    value = models.JSONField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["questionary", "question"], name="unique_answer_per_question"),
        ]
