"""Questionary service layer."""

from .evaluation_service import QuestionaryEvaluationService, build_evaluation, resolve_activation
from .template_service import TemplateService

__all__ = [
    "QuestionaryEvaluationService",
    "TemplateService",
    "build_evaluation",
    "resolve_activation",
]
