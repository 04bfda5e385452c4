"""
User directory: sign-in registration, roles and fraud flags.
"""

import logging
from typing import Any, Dict, List

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import access
from database import Database, sanitize, storage_errors
from errors import NotFound
from schemas import RegisterRequest, User

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Database):
        self.db = db

    def register(self, principal: str, profile: RegisterRequest) -> Dict[str, Any]:
        """Return the principal's user record, inserting it on first sign-in."""
        doc = User(email=principal, **profile.model_dump()).model_dump()
        doc.pop("email")
        with storage_errors("register user"):
            try:
                user = self.db.users.find_one_and_update(
                    {"email": principal},
                    {"$setOnInsert": doc},
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError:
                # a concurrent sign-in inserted the record first
                user = self.db.users.find_one({"email": principal})
        logger.info("User %s signed in", principal)
        return sanitize(user)

    def get_role(self, principal: str) -> Dict[str, Any]:
        user = access.load_user(self.db, principal)
        return {"role": user.get("role"), "status": user.get("status")}

    def list_users(self) -> List[Dict[str, Any]]:
        with storage_errors("fetch users"):
            return [sanitize(u) for u in self.db.users.find()]

    def set_role(self, email: str, role: str) -> Dict[str, Any]:
        access.ensure_assignable_role(role)
        with storage_errors("update user role"):
            updated = self.db.users.find_one_and_update(
                {"email": email},
                {"$set": {"role": role}},
                return_document=ReturnDocument.AFTER,
            )
        if not updated:
            raise NotFound("User")
        logger.info("User %s is now %s", email, role)
        return sanitize(updated)

    def flag_fraud(self, email: str) -> Dict[str, Any]:
        user = access.load_user(self.db, email)
        access.ensure_can_flag(user)
        with storage_errors("flag user"):
            updated = self.db.users.find_one_and_update(
                {"_id": user["_id"]},
                {"$set": {"status": "fraud"}},
                return_document=ReturnDocument.AFTER,
            )
        logger.warning("User %s marked as fraud", email)
        return sanitize(updated)
