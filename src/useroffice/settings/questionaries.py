from decouple import config

# Reject answers to questions hidden by their dependency. When disabled, hidden answers are
# stored anyway and simply stay hidden until the dependency is satisfied.
QUESTIONARY_REJECT_INACTIVE_ANSWERS: bool = config("QUESTIONARY_REJECT_INACTIVE_ANSWERS", default=True, cast=bool)
