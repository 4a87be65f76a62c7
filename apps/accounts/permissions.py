"""
Role checks used by every service before it reads protected data or
mutates anything. They take the acting identity explicitly and never look
at a request, so services stay safe to call from tests or other internal
callers with the same guarantees as over HTTP.
"""
import logging
import uuid

from apps.utils.exceptions import Forbidden
from .models import Role

logger = logging.getLogger(__name__)


def _role_name(role):
    return getattr(role, "value", role)


def require_role(acting_role, required_role, action=None):
    if acting_role != required_role:
        if action:
            message = f"User with role {_role_name(acting_role)} cannot {action}"
        else:
            message = f"Access denied for role: {_role_name(acting_role)}"
        logger.warning(message)
        raise Forbidden(message)


def require_any_role(acting_role, *candidate_roles):
    if acting_role not in candidate_roles:
        message = f"Access denied for role: {_role_name(acting_role)}"
        logger.warning(message)
        raise Forbidden(message)


def _normalize_id(value):
    # UUID objects, canonical strings and upper-case hex all compare equal
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return str(value)


def require_self_or_admin(acting_role, acting_user_id, target_user_id):
    if _normalize_id(acting_user_id) == _normalize_id(target_user_id):
        return
    if acting_role == Role.ADMIN:
        return
    logger.warning(f"User {acting_user_id} denied access to data of user {target_user_id}")
    raise Forbidden("Cannot access other user's data")
