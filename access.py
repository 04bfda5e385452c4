"""
Authorization rules shared by the services and route dependencies.

Each check returns nothing on success and raises Forbidden otherwise.
"""

import logging
from typing import Any, Dict, Iterable

from database import Database, storage_errors
from errors import Forbidden, InvalidTransition, NotFound

logger = logging.getLogger(__name__)

ROLES = ("user", "chef", "admin")


def ensure_self(principal: str, email: str, message: str = "Forbidden") -> None:
    if not email or email != principal:
        logger.warning("Self-access denied: %s requested data of %s", principal, email)
        raise Forbidden(message)


def ensure_owner(principal: str, resource: Dict[str, Any], field: str, message: str = "Forbidden") -> None:
    if resource.get(field) != principal:
        logger.warning("Owner access denied: %s is not %s of %s", principal, field, resource.get("_id"))
        raise Forbidden(message)


def load_user(db: Database, email: str) -> Dict[str, Any]:
    with storage_errors("load user"):
        user = db.users.find_one({"email": email})
    if not user:
        raise NotFound("User")
    return user


def require_role(db: Database, principal: str, roles: Iterable[str]) -> Dict[str, Any]:
    roles = tuple(roles)
    with storage_errors("load user"):
        user = db.users.find_one({"email": principal})
    if not user or user.get("role") not in roles:
        raise Forbidden("Insufficient permissions")
    return user


def ensure_not_fraud(db: Database, principal: str) -> None:
    with storage_errors("load user"):
        user = db.users.find_one({"email": principal})
    if user and user.get("status") == "fraud":
        raise Forbidden("Account is flagged as fraud")


def ensure_assignable_role(role: str) -> None:
    if role not in ROLES:
        raise Forbidden(f"Role must be one of {', '.join(ROLES)}")


def ensure_can_flag(user: Dict[str, Any]) -> None:
    if user.get("role") == "admin":
        raise Forbidden("Admins cannot be marked as fraud")
    if user.get("status") == "fraud":
        raise InvalidTransition("User is already marked as fraud")
