"""Stripe payment provider implementation.

Implements PaymentProvider using PaymentIntents for one-time purchases and
verifies webhook signatures.
"""

import logging
from typing import Any

import stripe

from backend.app.billing.provider import PaymentHandle, PaymentVerification, WebhookEvent
from backend.app.errors import PaymentProviderError, PaymentVerificationError

logger = logging.getLogger(__name__)


class StripePaymentProvider:
    """Stripe implementation of PaymentProvider."""

    def __init__(self, secret_key: str, webhook_secret: str | None = None) -> None:
        """Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key
            webhook_secret: Stripe webhook signing secret (webhooks rejected when unset)
        """
        self._client = stripe.StripeClient(secret_key)
        self._webhook_secret = webhook_secret

    def create_payment(self, amount_cents: int, metadata: dict[str, str]) -> PaymentHandle:
        """Create a USD PaymentIntent carrying the given metadata."""
        try:
            intent = self._client.payment_intents.create(
                params={
                    "amount": amount_cents,
                    "currency": "usd",
                    "automatic_payment_methods": {"enabled": True},
                    "metadata": metadata,
                }
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {e}")
            raise PaymentProviderError("Failed to create payment") from e

        return PaymentHandle(
            payment_id=intent.id,
            client_secret=intent.client_secret,
            amount_cents=amount_cents,
        )

    def verify_payment(self, payment_id: str) -> PaymentVerification:
        """Retrieve the PaymentIntent and report whether it succeeded."""
        try:
            intent = self._client.payment_intents.retrieve(payment_id)
        except stripe.InvalidRequestError:
            return PaymentVerification(succeeded=False, status="not_found")
        except stripe.StripeError as e:
            logger.error(f"Stripe payment verification failed: {e}")
            raise PaymentProviderError("Failed to verify payment") from e

        return PaymentVerification(
            succeeded=intent.status == "succeeded",
            status=intent.status,
            metadata=dict(intent.metadata or {}),
        )

    def parse_webhook(self, body: bytes, signature: str | None) -> WebhookEvent:
        """Verify Stripe webhook signature and parse the event."""
        if not self._webhook_secret:
            raise PaymentVerificationError("STRIPE_WEBHOOK_SECRET not configured")
        if not signature:
            raise PaymentVerificationError("Missing stripe-signature header")

        try:
            event = stripe.Webhook.construct_event(body, signature, self._webhook_secret)
        except ValueError as e:
            raise PaymentVerificationError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise PaymentVerificationError("Invalid webhook signature") from e

        return self._to_event(event)

    @staticmethod
    def _to_event(event: Any) -> WebhookEvent:
        data = event["data"]["object"]
        payment_id = data.get("id") if event["type"].startswith("payment_intent.") else None
        return WebhookEvent(
            event_id=event["id"],
            event_type=event["type"],
            payment_id=payment_id,
            metadata=dict(data.get("metadata") or {}),
        )
