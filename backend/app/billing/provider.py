"""Payment provider protocol.

The core only consumes a boolean "succeeded" plus the metadata attached when
the payment handle was created; card data and webhook retries stay with the
provider.
"""

import itertools
from dataclasses import dataclass, field
from typing import Protocol

from backend.app.errors import PaymentVerificationError


@dataclass
class PaymentHandle:
    """Client-facing handle for a created payment."""

    payment_id: str
    client_secret: str | None
    amount_cents: int


@dataclass
class PaymentVerification:
    """Outcome of checking a payment handle."""

    succeeded: bool
    status: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class WebhookEvent:
    """Verified provider webhook event."""

    event_id: str
    event_type: str
    payment_id: str | None
    metadata: dict[str, str]


class PaymentProvider(Protocol):
    """Protocol for payment providers."""

    def create_payment(self, amount_cents: int, metadata: dict[str, str]) -> PaymentHandle:
        """Create a one-time payment for a fixed amount.

        Raises:
            PaymentProviderError: If the provider call fails
        """
        ...

    def verify_payment(self, payment_id: str) -> PaymentVerification:
        """Check whether a payment reached its terminal succeeded state.

        Raises:
            PaymentProviderError: If the provider call fails
        """
        ...

    def parse_webhook(self, body: bytes, signature: str | None) -> WebhookEvent:
        """Verify a webhook signature and parse the event.

        Raises:
            PaymentVerificationError: If the payload or signature is invalid
        """
        ...


class StubPaymentProvider:
    """In-process payment provider for local runs and tests.

    Payments succeed once marked via `mark_succeeded`, or immediately when
    auto_succeed is set.
    """

    def __init__(self, auto_succeed: bool = True) -> None:
        self._auto_succeed = auto_succeed
        self._payments: dict[str, tuple[int, dict[str, str], str]] = {}
        self._ids = itertools.count(1)

    def create_payment(self, amount_cents: int, metadata: dict[str, str]) -> PaymentHandle:
        """Record a payment in memory."""
        payment_id = f"pi_stub_{next(self._ids)}"
        status = "succeeded" if self._auto_succeed else "requires_payment_method"
        self._payments[payment_id] = (amount_cents, dict(metadata), status)
        return PaymentHandle(
            payment_id=payment_id,
            client_secret=f"{payment_id}_secret",
            amount_cents=amount_cents,
        )

    def mark_succeeded(self, payment_id: str) -> None:
        """Simulate the customer completing payment."""
        amount, metadata, _ = self._payments[payment_id]
        self._payments[payment_id] = (amount, metadata, "succeeded")

    def verify_payment(self, payment_id: str) -> PaymentVerification:
        """Report the recorded payment status."""
        record = self._payments.get(payment_id)
        if record is None:
            return PaymentVerification(succeeded=False, status="not_found")
        _, metadata, status = record
        return PaymentVerification(
            succeeded=status == "succeeded", status=status, metadata=dict(metadata)
        )

    def parse_webhook(self, body: bytes, signature: str | None) -> WebhookEvent:
        """Stub webhooks are not signed; reject them all."""
        raise PaymentVerificationError("Webhooks are not supported without a payment provider")
