from mixdrop.api.utils.constants import ROLE_ADMIN


def is_admin(user) -> bool:
    return user is not None and user.role == ROLE_ADMIN


def can_manage(user, owner_id: int) -> bool:
    """Le propriétaire ou un administrateur peut modifier/supprimer la ressource."""
    return user is not None and (user.id == owner_id or is_admin(user))


def can_view(user, owner_id: int, is_public: bool) -> bool:
    return bool(is_public) or can_manage(user, owner_id)
