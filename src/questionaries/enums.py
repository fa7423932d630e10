"""Enums for the questionary engine."""

from django.db.models import TextChoices


class DataType(TextChoices):
    """The answer type of a question."""

    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    SELECTION = "SELECTION"
    FILE = "FILE"
    # Display-only block (headings, instructions). Never answered, never required.
    EMBELLISHMENT = "EMBELLISHMENT"


class Operator(TextChoices):
    """Comparison operators available to field dependencies."""

    EQ = "eq"
    NEQ = "neq"


class TemplateCategory(TextChoices):
    PROPOSAL_QUESTIONARY = "proposal_questionary"
    SAMPLE_DECLARATION = "sample_declaration"


class Action(TextChoices):
    """Operations the authorization collaborator is asked about."""

    VIEW_TEMPLATE = "view_template"
    EDIT_TEMPLATE = "edit_template"
    VIEW_QUESTIONARY = "view_questionary"
    ANSWER_QUESTIONARY = "answer_questionary"
