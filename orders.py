"""
Order lifecycle.

orderStatus moves pending -> accepted -> delivered, or to cancelled from any
open state. delivered and cancelled are terminal. paymentStatus is tracked
independently and only ever moves pending -> paid.
"""

import logging
from typing import Any, Dict, List

from pymongo import DESCENDING, ReturnDocument

import access
from database import Database, sanitize, storage_errors, to_obj_id
from errors import InvalidInput, InvalidTransition, NotFound
from schemas import Order, OrderCreate, utcnow

logger = logging.getLogger(__name__)

REQUESTABLE_STATUSES = ("accepted", "cancelled", "delivered")
TERMINAL_STATUSES = ("cancelled", "delivered")


def ensure_requestable(requested: str) -> None:
    if requested not in REQUESTABLE_STATUSES:
        raise InvalidInput(f"Status must be one of {', '.join(REQUESTABLE_STATUSES)}")


def check_transition(current: str, requested: str) -> None:
    """Raise unless an order in `current` may move to `requested`."""
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Order is already {current} and cannot be changed")
    if requested == "delivered" and current != "accepted":
        raise InvalidTransition("Order must be accepted before it can be delivered")


class OrderService:
    def __init__(self, db: Database):
        self.db = db

    def _get(self, order_id: str) -> Dict[str, Any]:
        oid = to_obj_id(order_id)
        with storage_errors("fetch order"):
            order = self.db.orders.find_one({"_id": oid})
        if not order:
            raise NotFound("Order")
        return order

    def get_for_buyer(self, order_id: str, principal: str) -> Dict[str, Any]:
        order = self._get(order_id)
        access.ensure_owner(principal, order, "userEmail")
        return sanitize(order)

    def create_order(self, payload: OrderCreate, principal: str) -> Dict[str, Any]:
        access.ensure_not_fraud(self.db, principal)
        doc = Order(userEmail=principal, **payload.model_dump()).model_dump()
        with storage_errors("place order"):
            res = self.db.orders.insert_one(doc)
        doc["_id"] = res.inserted_id
        logger.info("Order %s placed by %s for meal %s", res.inserted_id, principal, payload.mealId)
        return sanitize(doc)

    def set_status(self, order_id: str, requested_status: str, principal: str) -> Dict[str, Any]:
        ensure_requestable(requested_status)
        order = self._get(order_id)
        current = order.get("orderStatus")
        try:
            check_transition(current, requested_status)
        except InvalidTransition:
            logger.info("Rejected %s -> %s on order %s by %s", current, requested_status, order_id, principal)
            raise
        with storage_errors("update order status"):
            updated = self.db.orders.find_one_and_update(
                {"_id": order["_id"], "orderStatus": current},
                {"$set": {"orderStatus": requested_status}},
                return_document=ReturnDocument.AFTER,
            )
        if not updated:
            # deleted or moved by another request since it was read
            raise InvalidTransition("Order changed while updating, please retry")
        logger.info("Order %s moved %s -> %s by %s", order_id, current, requested_status, principal)
        return sanitize(updated)

    def mark_paid(self, order_id: str) -> Dict[str, Any]:
        oid = to_obj_id(order_id)
        with storage_errors("mark order paid"):
            updated = self.db.orders.find_one_and_update(
                {"_id": oid},
                {"$set": {"paymentStatus": "paid", "paidAt": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        if not updated:
            raise NotFound("Order")
        logger.info("Order %s marked paid", order_id)
        return sanitize(updated)

    def delete_order(self, order_id: str, principal: str) -> None:
        order = self._get(order_id)
        access.ensure_owner(principal, order, "userEmail", "Forbidden: You can only cancel your own order")
        with storage_errors("delete order"):
            self.db.orders.delete_one({"_id": order["_id"]})
        logger.info("Order %s deleted by %s", order_id, principal)

    def list_for_buyer(self, email: str, principal: str) -> List[Dict[str, Any]]:
        access.ensure_self(principal, email)
        with storage_errors("fetch orders"):
            cursor = self.db.orders.find({"userEmail": email}).sort([("orderTime", DESCENDING)])
            return [sanitize(o) for o in cursor]

    def list_for_chef(self, chef_id: str) -> List[Dict[str, Any]]:
        if not chef_id:
            raise InvalidInput("chefId is required")
        with storage_errors("fetch chef orders"):
            cursor = self.db.orders.find({"chefId": chef_id}).sort([("orderTime", DESCENDING)])
            return [sanitize(o) for o in cursor]
