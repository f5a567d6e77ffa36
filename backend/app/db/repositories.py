"""Repository protocol interfaces for data access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from backend.app.models.account import Account, NewAccount
from backend.app.models.common import PackageTier
from backend.app.models.itinerary import ItineraryDocument


class StoreError(Exception):
    """Underlying store fault (connection lost, constraint violation, ...)."""

    pass


class AccountRepository(Protocol):
    """Repository for accounts and their entitlement state."""

    def create_account(self, new_account: NewAccount, starter_credits: int) -> Account:
        """Create an account on the free tier with a starter credit grant.

        Args:
            new_account: Registration fields
            starter_credits: Initial finite balance

        Returns:
            Created account

        Raises:
            DuplicateUsernameError: If the username is taken
        """
        ...

    def get_account(self, account_id: int) -> Account:
        """Get account by ID.

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        ...

    def get_by_username(self, username: str) -> Account | None:
        """Case-insensitive username lookup."""
        ...

    def get_by_provider(self, provider_id: str, uid: str) -> Account | None:
        """Look up an account by external identity."""
        ...

    def get_password_hash(self, account_id: int) -> str:
        """Stored password hash for credential checks.

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        ...

    def link_identity(
        self,
        account_id: int,
        provider_id: str,
        uid: str,
        photo_url: str | None = None,
        display_name: str | None = None,
    ) -> Account:
        """Attach an external identity; profile fields only overwrite when supplied.

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        ...

    def set_stripe_customer_id(self, account_id: int, customer_id: str) -> Account:
        """Remember the payment-provider customer handle.

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        ...

    def consume_credit(self, account_id: int) -> Account:
        """Atomically spend one credit (floored at zero, no-op when unlimited).

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        ...

    def apply_package(
        self,
        account_id: int,
        tier: PackageTier,
        credits_to_add: int | None,
        payment_id: str | None = None,
    ) -> Account:
        """Upgrade tier and top up credits.

        When payment_id is given it is recorded as redeemed together with the
        ledger change, so one payment can fund at most one top-up.

        Raises:
            AccountNotFoundError: If the account does not exist
            PaymentAlreadyUsedError: If payment_id was already redeemed
        """
        ...

    def redeem_payment(self, account_id: int, payment_id: str) -> None:
        """Record a payment as spent without touching credits (pay-per-itinerary).

        Raises:
            PaymentAlreadyUsedError: If payment_id was already redeemed
        """
        ...

    def release_payment(self, payment_id: str) -> None:
        """Forget a redemption whose purchase could not be delivered."""
        ...


class ItineraryRepository(Protocol):
    """Repository for itinerary documents."""

    def create(self, document: ItineraryDocument) -> int:
        """Append a new document, assigning a monotonically increasing ID.

        Args:
            document: Unsaved document (id is ignored)

        Returns:
            Assigned itinerary ID
        """
        ...

    def get(self, itinerary_id: int) -> ItineraryDocument | None:
        """Get document by ID, or None if unknown."""
        ...

    def update(self, document: ItineraryDocument) -> ItineraryDocument:
        """Replace a stored document keyed by its existing ID.

        Raises:
            ItineraryNotFoundError: If the ID is unknown
        """
        ...

    def list_by_account(self, account_id: int) -> list[ItineraryDocument]:
        """All documents owned by an account, newest first (no pagination)."""
        ...

    def count_by_account(self, account_id: int) -> int:
        """Number of documents owned by an account."""
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
