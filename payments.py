"""
Stripe checkout sessions for paying an order.
"""

import logging

import stripe

from errors import InternalFailure

logger = logging.getLogger(__name__)


class StripePaymentGateway:
    def __init__(self, api_key: str, currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    def create_checkout_session(
        self,
        meal_name: str,
        meal_image: str,
        unit_amount_cents: int,
        quantity: int,
        buyer_email: str,
        success_url: str,
        cancel_url: str,
    ) -> str:
        product_data = {"name": meal_name}
        if meal_image:
            product_data["images"] = [meal_image]
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                payment_method_types=["card"],
                mode="payment",
                customer_email=buyer_email,
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": product_data,
                            "unit_amount": unit_amount_cents,
                        },
                        "quantity": quantity,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as exc:
            logger.exception("Stripe checkout session failed for %s", buyer_email)
            raise InternalFailure("Failed to create checkout session") from exc
        return session.url
