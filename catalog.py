"""
Meal listings and favorites.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument

import access
from database import Database, sanitize, storage_errors, to_obj_id
from errors import InvalidInput, NotFound
from schemas import Favorite, FavoriteCreate, Meal, MealCreate, MealUpdate

logger = logging.getLogger(__name__)


class MealService:
    def __init__(self, db: Database):
        self.db = db

    def _get(self, meal_id: str) -> Dict[str, Any]:
        oid = to_obj_id(meal_id)
        with storage_errors("fetch meal"):
            meal = self.db.meals.find_one({"_id": oid})
        if not meal:
            raise NotFound("Meal")
        return meal

    def create_meal(self, payload: MealCreate, principal: str) -> Dict[str, Any]:
        access.require_role(self.db, principal, ("chef",))
        access.ensure_not_fraud(self.db, principal)
        doc = Meal(chefEmail=principal, **payload.model_dump()).model_dump()
        with storage_errors("create meal"):
            res = self.db.meals.insert_one(doc)
        doc["_id"] = res.inserted_id
        logger.info("Meal %s created by %s", res.inserted_id, principal)
        return sanitize(doc)

    def list_meals(self) -> List[Dict[str, Any]]:
        with storage_errors("fetch meals"):
            return [sanitize(m) for m in self.db.meals.find().sort([("createdAt", DESCENDING)])]

    def get_meal(self, meal_id: str) -> Dict[str, Any]:
        return sanitize(self._get(meal_id))

    def list_for_chef(self, email: str, principal: str) -> List[Dict[str, Any]]:
        access.ensure_self(principal, email, "Forbidden: Cannot access other user inventory")
        with storage_errors("fetch inventory"):
            return [sanitize(m) for m in self.db.meals.find({"chefEmail": email})]

    def update_meal(self, meal_id: str, payload: MealUpdate, principal: str) -> Dict[str, Any]:
        meal = self._get(meal_id)
        access.ensure_owner(principal, meal, "chefEmail", "Forbidden: You can only edit your own meal")
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise InvalidInput("No fields to update")
        with storage_errors("update meal"):
            updated = self.db.meals.find_one_and_update(
                {"_id": meal["_id"]},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        if not updated:
            raise NotFound("Meal")
        return sanitize(updated)

    def delete_meal(self, meal_id: str, principal: str) -> None:
        meal = self._get(meal_id)
        access.ensure_owner(principal, meal, "chefEmail", "Forbidden: You can only delete your own meal")
        with storage_errors("delete meal"):
            self.db.meals.delete_one({"_id": meal["_id"]})
        logger.info("Meal %s deleted by %s", meal_id, principal)


class FavoriteService:
    def __init__(self, db: Database):
        self.db = db

    def add_favorite(self, payload: FavoriteCreate, principal: str) -> Optional[Dict[str, Any]]:
        """Save a meal for the principal. Returns None when it is already saved."""
        access.ensure_self(principal, payload.userEmail)
        with storage_errors("add favorite"):
            exists = self.db.favorites.find_one({"userEmail": payload.userEmail, "mealId": payload.mealId})
            if exists:
                return None
            doc = Favorite(**payload.model_dump()).model_dump()
            res = self.db.favorites.insert_one(doc)
        doc["_id"] = res.inserted_id
        return sanitize(doc)

    def list_favorites(self, email: str, principal: str) -> List[Dict[str, Any]]:
        access.ensure_self(principal, email)
        with storage_errors("fetch favorites"):
            cursor = self.db.favorites.find({"userEmail": email}).sort([("addedTime", DESCENDING)])
            return [sanitize(f) for f in cursor]

    def remove_favorite(self, favorite_id: str, principal: str) -> None:
        oid = to_obj_id(favorite_id)
        with storage_errors("fetch favorite"):
            favorite = self.db.favorites.find_one({"_id": oid})
        if not favorite:
            raise NotFound("Favorite")
        access.ensure_owner(principal, favorite, "userEmail")
        with storage_errors("remove favorite"):
            self.db.favorites.delete_one({"_id": oid})
