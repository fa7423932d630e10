import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Question",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("id", models.CharField(editable=False, max_length=128, primary_key=True, serialize=False)),
                (
                    "data_type",
                    models.CharField(
                        choices=[
                            ("TEXT", "Text"),
                            ("NUMBER", "Number"),
                            ("DATE", "Date"),
                            ("BOOLEAN", "Boolean"),
                            ("SELECTION", "Selection"),
                            ("FILE", "File"),
                            ("EMBELLISHMENT", "Embellishment"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("natural_key", models.CharField(max_length=255, unique=True)),
                ("question", models.TextField(blank=True, default="")),
                ("default_config", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "ordering": ["natural_key"],
            },
        ),
        migrations.CreateModel(
            name="Template",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("proposal_questionary", "Proposal Questionary"),
                            ("sample_declaration", "Sample Declaration"),
                        ],
                        db_index=True,
                        default="proposal_questionary",
                        max_length=32,
                    ),
                ),
                (
                    "is_archived",
                    models.BooleanField(
                        db_index=True, default=False, help_text="Archived templates cannot start new questionaries."
                    ),
                ),
                ("version", models.PositiveIntegerField(default=0, help_text="Bumped on every structural save.")),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Topic",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                ("is_enabled", models.BooleanField(default=True)),
                (
                    "template",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="topics",
                        to="questionaries.template",
                    ),
                ),
            ],
            options={
                "ordering": ["sort_order"],
            },
        ),
        migrations.CreateModel(
            name="QuestionTemplateRelation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                ("config", models.JSONField(blank=True, default=dict)),
                (
                    "dependency_operator",
                    models.CharField(
                        blank=True, choices=[("eq", "Eq"), ("neq", "Neq")], max_length=16, null=True
                    ),
                ),
                ("dependency_params", models.JSONField(blank=True, null=True)),
                (
                    "dependency_question",
                    models.ForeignKey(
                        blank=True,
                        help_text="The question whose answer decides whether this one is shown.",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dependent_relations",
                        to="questionaries.question",
                    ),
                ),
                (
                    "question",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="template_relations",
                        to="questionaries.question",
                    ),
                ),
                (
                    "template",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fields",
                        to="questionaries.template",
                    ),
                ),
                (
                    "topic",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fields",
                        to="questionaries.topic",
                    ),
                ),
            ],
            options={
                "ordering": ["sort_order"],
                "indexes": [
                    models.Index(fields=["template", "dependency_question"], name="qtr_template_dependency_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("template", "question"), name="unique_question_per_template")
                ],
            },
        ),
        migrations.CreateModel(
            name="Questionary",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="questionaries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "template",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="questionaries",
                        to="questionaries.template",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Answer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("value", models.JSONField(blank=True, null=True)),
                (
                    "question",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="answers",
                        to="questionaries.question",
                    ),
                ),
                (
                    "questionary",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="answers",
                        to="questionaries.questionary",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("questionary", "question"), name="unique_answer_per_question")
                ],
            },
        ),
    ]
