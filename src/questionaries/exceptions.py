"""Custom exceptions for the questionaries app."""


class QuestionaryException(Exception):
    """Base exception for the questionaries app."""


class AnswerValidationError(QuestionaryException):
    """Raised when an answer does not match its question's type or configuration."""


class UnsupportedOperatorError(QuestionaryException):
    """Raised when a dependency condition uses an operator the evaluator does not know.

    This signals corrupt configuration, not a user error.
    """


class NotAuthorizedError(QuestionaryException):
    """Raised when the authorization collaborator denies an operation."""


# ---- Structural edits ----


class TemplateEditError(QuestionaryException):
    """Base class for rejected structural template edits. Nothing is written."""


class CyclicDependencyError(TemplateEditError):
    """Raised when a dependency would make a question depend on itself, directly or transitively."""


class InvalidOrderError(TemplateEditError):
    """Raised when a sort order or a topic ordering is invalid."""


class TopicNotEmptyError(TemplateEditError):
    """Raised when deleting a topic that still holds questions."""


class DependencyTargetInUseError(TemplateEditError):
    """Raised when deleting a question that other questions depend on."""


class DependencyTargetNotFoundError(TemplateEditError):
    """Raised when a dependency points to a question that is not part of the template."""


class InvalidDependencyError(TemplateEditError):
    """Raised when a dependency targets a display-only question or carries ill-typed params."""


class TemplateIntegrityError(TemplateEditError):
    """Raised when an edit references unknown topics or fields, or breaks template integrity."""


# ---- Store and lifecycle ----


class StaleTemplateError(QuestionaryException):
    """Raised when a template snapshot is saved after the stored template changed."""


class ArchivedTemplateError(QuestionaryException):
    """Raised when creating a questionary from an archived template."""


class TemplateInUseError(QuestionaryException):
    """Raised when deleting a template that questionaries still reference."""


class TemplateNotFoundError(QuestionaryException):
    """Raised when a template does not exist."""


class QuestionaryNotFoundError(QuestionaryException):
    """Raised when a questionary does not exist."""


class QuestionNotFoundError(QuestionaryException):
    """Raised when a question does not exist."""
