"""
Reviews and meal rating aggregation.

A meal's rating is recomputed from every stored review for that meal each
time a review is added or removed, then written back with a targeted $set.
The read-compute-write sequence is not transactional: two submissions for
the same meal racing each other can leave the rating from the earlier read.
"""

import logging
from typing import Any, Dict, List, Tuple

from pymongo import DESCENDING

import access
from database import Database, sanitize, storage_errors, to_obj_id
from errors import NotFound
from schemas import Review, ReviewCreate

logger = logging.getLogger(__name__)


def average(ratings: List[float]) -> float:
    return sum(ratings) / len(ratings) if ratings else 0


class RatingAggregator:
    def __init__(self, db: Database):
        self.db = db

    def recompute(self, food_id: str) -> float:
        with storage_errors("update average rating"):
            reviews = self.db.reviews.find({"foodId": food_id}, {"rating": 1})
            avg_rating = average([r["rating"] for r in reviews])
            self.db.meals.update_one({"_id": to_obj_id(food_id)}, {"$set": {"rating": avg_rating}})
        return avg_rating

    def submit_review(self, payload: ReviewCreate, principal: str) -> Tuple[Dict[str, Any], float]:
        doc = Review(reviewerEmail=principal, **payload.model_dump()).model_dump()
        with storage_errors("submit review"):
            res = self.db.reviews.insert_one(doc)
        doc["_id"] = res.inserted_id
        avg_rating = self.recompute(payload.foodId)
        logger.info("Review %s on meal %s by %s, rating now %.2f", res.inserted_id, payload.foodId, principal, avg_rating)
        return sanitize(doc), avg_rating

    def list_reviews(self, food_id: str) -> List[Dict[str, Any]]:
        with storage_errors("fetch reviews"):
            cursor = self.db.reviews.find({"foodId": food_id}).sort([("date", DESCENDING)])
            return [sanitize(r) for r in cursor]

    def delete_review(self, review_id: str, principal: str) -> float:
        oid = to_obj_id(review_id)
        with storage_errors("fetch review"):
            review = self.db.reviews.find_one({"_id": oid})
        if not review:
            raise NotFound("Review")
        access.ensure_owner(principal, review, "reviewerEmail", "Forbidden: You can only delete your own review")
        with storage_errors("delete review"):
            self.db.reviews.delete_one({"_id": oid})
        avg_rating = self.recompute(review["foodId"])
        logger.info("Review %s deleted by %s, meal %s rating now %.2f", review_id, principal, review["foodId"], avg_rating)
        return avg_rating
