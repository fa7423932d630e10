from django.apps import AppConfig


class QuestionariesConfig(AppConfig):
    """Configuration for the questionaries app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "questionaries"
    verbose_name = "Questionaries"
