import typing as t
from uuid import UUID

from .enums import Action
from .models import Questionary


class DjangoAuthorizer:
    """Authorizer for Django users.

    Staff may do anything. Any authenticated user may view templates. A questionary may be
    viewed and answered by the user who created it.
    """

    def has_permission(self, principal: t.Any, action: Action, resource_id: UUID | None = None) -> bool:
        """Whether ``principal`` may perform ``action`` on the resource."""
        if principal is None or not getattr(principal, "is_authenticated", False):
            return False
        if principal.is_staff or principal.is_superuser:
            return True
        match action:
            case Action.VIEW_TEMPLATE:
                return True
            case Action.EDIT_TEMPLATE:
                return False
            case Action.VIEW_QUESTIONARY | Action.ANSWER_QUESTIONARY:
                if resource_id is None:
                    return False
                return Questionary.objects.filter(pk=resource_id, created_by_id=principal.id).exists()
        return False
