"""In-memory implementations of repository interfaces."""

import itertools
import threading
from datetime import datetime, timedelta

from backend.app.db.repositories import RetryAfter
from backend.app.errors import (
    AccountNotFoundError,
    DuplicateUsernameError,
    ItineraryNotFoundError,
    PaymentAlreadyUsedError,
)
from backend.app.ledger import entitlements
from backend.app.models.account import Account, NewAccount
from backend.app.models.common import FiniteCredits, PackageTier
from backend.app.models.itinerary import ItineraryDocument


class InMemoryAccountRepository:
    """In-memory implementation of AccountRepository.

    A single lock serializes read-modify-write so concurrent consumers
    cannot both spend the last credit.
    """

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._password_hashes: dict[int, str] = {}
        self._redeemed_payments: dict[str, int] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create_account(self, new_account: NewAccount, starter_credits: int) -> Account:
        """Create an account on the free tier with a starter credit grant."""
        with self._lock:
            if self._find_username(new_account.username) is not None:
                raise DuplicateUsernameError(new_account.username)
            account = Account(
                id=next(self._ids),
                username=new_account.username,
                email=new_account.email,
                display_name=new_account.display_name,
                photo_url=new_account.photo_url,
                provider_id=new_account.provider_id,
                uid=new_account.uid,
                tier=PackageTier.free,
                credits=FiniteCredits(remaining=starter_credits),
                created_at=datetime.now(),
            )
            self._accounts[account.id] = account
            self._password_hashes[account.id] = new_account.password_hash
        return account

    def get_account(self, account_id: int) -> Account:
        """Get account by ID."""
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def get_by_username(self, username: str) -> Account | None:
        """Case-insensitive username lookup."""
        return self._find_username(username)

    def _find_username(self, username: str) -> Account | None:
        wanted = username.lower()
        for account in self._accounts.values():
            if account.username.lower() == wanted:
                return account
        return None

    def get_by_provider(self, provider_id: str, uid: str) -> Account | None:
        """Look up an account by external identity."""
        for account in self._accounts.values():
            if account.provider_id == provider_id and account.uid == uid:
                return account
        return None

    def get_password_hash(self, account_id: int) -> str:
        """Stored password hash for credential checks."""
        self.get_account(account_id)
        return self._password_hashes[account_id]

    def link_identity(
        self,
        account_id: int,
        provider_id: str,
        uid: str,
        photo_url: str | None = None,
        display_name: str | None = None,
    ) -> Account:
        """Attach an external identity to an existing account."""
        with self._lock:
            account = self.get_account(account_id)
            updated = account.model_copy(
                update={
                    "provider_id": provider_id,
                    "uid": uid,
                    "photo_url": photo_url or account.photo_url,
                    "display_name": display_name or account.display_name,
                }
            )
            self._accounts[account_id] = updated
        return updated

    def set_stripe_customer_id(self, account_id: int, customer_id: str) -> Account:
        """Remember the payment-provider customer handle."""
        with self._lock:
            account = self.get_account(account_id)
            updated = account.model_copy(update={"stripe_customer_id": customer_id})
            self._accounts[account_id] = updated
        return updated

    def consume_credit(self, account_id: int) -> Account:
        """Atomically spend one credit."""
        with self._lock:
            updated = entitlements.consume_credit(self.get_account(account_id))
            self._accounts[account_id] = updated
        return updated

    def apply_package(
        self,
        account_id: int,
        tier: PackageTier,
        credits_to_add: int | None,
        payment_id: str | None = None,
    ) -> Account:
        """Upgrade tier and top up credits, redeeming payment_id if given."""
        with self._lock:
            if payment_id is not None and payment_id in self._redeemed_payments:
                raise PaymentAlreadyUsedError(payment_id)
            updated = entitlements.apply_package(
                self.get_account(account_id), tier, credits_to_add
            )
            self._accounts[account_id] = updated
            if payment_id is not None:
                self._redeemed_payments[payment_id] = account_id
        return updated

    def redeem_payment(self, account_id: int, payment_id: str) -> None:
        """Record a payment as spent."""
        with self._lock:
            self.get_account(account_id)
            if payment_id in self._redeemed_payments:
                raise PaymentAlreadyUsedError(payment_id)
            self._redeemed_payments[payment_id] = account_id

    def release_payment(self, payment_id: str) -> None:
        """Forget a redemption."""
        with self._lock:
            self._redeemed_payments.pop(payment_id, None)


class InMemoryItineraryRepository:
    """In-memory implementation of ItineraryRepository."""

    def __init__(self) -> None:
        self._documents: dict[int, ItineraryDocument] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, document: ItineraryDocument) -> int:
        """Append a new document with the next ID."""
        with self._lock:
            itinerary_id = next(self._ids)
            self._documents[itinerary_id] = document.model_copy(
                update={"id": itinerary_id}, deep=True
            )
        return itinerary_id

    def get(self, itinerary_id: int) -> ItineraryDocument | None:
        """Get document by ID."""
        document = self._documents.get(itinerary_id)
        if document is None:
            return None
        return document.model_copy(deep=True)

    def update(self, document: ItineraryDocument) -> ItineraryDocument:
        """Replace a stored document keyed by its existing ID."""
        with self._lock:
            if document.id is None or document.id not in self._documents:
                raise ItineraryNotFoundError(document.id or 0)
            self._documents[document.id] = document.model_copy(deep=True)
        return document

    def list_by_account(self, account_id: int) -> list[ItineraryDocument]:
        """All documents owned by an account, newest first."""
        results = [
            document.model_copy(deep=True)
            for document in self._documents.values()
            if document.account_id == account_id
        ]

        # Sort by created_at descending, newest ID first on ties
        results.sort(key=lambda d: (d.created_at, d.id or 0), reverse=True)

        return results

    def count_by_account(self, account_id: int) -> int:
        """Number of documents owned by an account."""
        return sum(1 for d in self._documents.values() if d.account_id == account_id)


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        if key in self._windows:
            window_start, count = self._windows[key]

            # Check if window expired
            if now >= window_start + timedelta(seconds=self._window_seconds):
                self._windows[key] = (now, 1)
                return None

            if count >= self._max_requests:
                seconds_remaining = int(
                    (window_start + timedelta(seconds=self._window_seconds) - now).total_seconds()
                )
                return RetryAfter(seconds=max(1, seconds_remaining))

            self._windows[key] = (window_start, count + 1)
            return None
        else:
            # First request
            self._windows[key] = (now, 1)
            return None
