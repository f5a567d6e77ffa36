"""SQL implementations of repository interfaces."""

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.db.context import RequestContext
from backend.app.db.models import Account as AccountRow
from backend.app.db.models import Itinerary as ItineraryRow
from backend.app.db.models import RedeemedPayment as RedeemedPaymentRow
from backend.app.db.queries import query_itineraries
from backend.app.db.repositories import StoreError
from backend.app.errors import (
    AccountNotFoundError,
    DuplicateUsernameError,
    ItineraryNotFoundError,
    PaymentAlreadyUsedError,
)
from backend.app.ledger import entitlements
from backend.app.models.account import Account, NewAccount
from backend.app.models.common import FiniteCredits, PackageTier, UnlimitedCredits
from backend.app.models.itinerary import ItineraryDocument


def _to_account(row: AccountRow) -> Account:
    """Map an ORM row onto the Account model."""
    credits: FiniteCredits | UnlimitedCredits
    if row.credits_unlimited:
        credits = UnlimitedCredits()
    else:
        credits = FiniteCredits(remaining=row.credits_remaining)

    return Account(
        id=row.account_id,
        username=row.username,
        email=row.email,
        display_name=row.display_name,
        photo_url=row.photo_url,
        provider_id=row.provider_id,
        uid=row.uid,
        stripe_customer_id=row.stripe_customer_id,
        tier=PackageTier(row.package_tier),
        credits=credits,
        created_at=row.created_at,
    )


class SqlAccountRepository:
    """SQL implementation of AccountRepository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get_row(self, account_id: int) -> AccountRow:
        row = self._session.get(AccountRow, account_id)
        if row is None:
            raise AccountNotFoundError(account_id)
        return row

    def create_account(self, new_account: NewAccount, starter_credits: int) -> Account:
        """Create an account on the free tier with a starter credit grant."""
        row = AccountRow(
            username=new_account.username,
            password_hash=new_account.password_hash,
            email=new_account.email,
            display_name=new_account.display_name,
            photo_url=new_account.photo_url,
            provider_id=new_account.provider_id,
            uid=new_account.uid,
            package_tier=PackageTier.free.value,
            credits_remaining=starter_credits,
            credits_unlimited=False,
        )

        try:
            self._session.add(row)
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise DuplicateUsernameError(new_account.username) from e

        self._session.refresh(row)
        return _to_account(row)

    def get_account(self, account_id: int) -> Account:
        """Get account by ID."""
        return _to_account(self._get_row(account_id))

    def get_by_username(self, username: str) -> Account | None:
        """Case-insensitive username lookup."""
        row = (
            self._session.query(AccountRow)
            .filter(func.lower(AccountRow.username) == username.lower())
            .first()
        )
        return _to_account(row) if row is not None else None

    def get_by_provider(self, provider_id: str, uid: str) -> Account | None:
        """Look up an account by external identity."""
        row = (
            self._session.query(AccountRow)
            .filter(AccountRow.provider_id == provider_id, AccountRow.uid == uid)
            .first()
        )
        return _to_account(row) if row is not None else None

    def get_password_hash(self, account_id: int) -> str:
        """Stored password hash for credential checks."""
        return self._get_row(account_id).password_hash

    def link_identity(
        self,
        account_id: int,
        provider_id: str,
        uid: str,
        photo_url: str | None = None,
        display_name: str | None = None,
    ) -> Account:
        """Attach an external identity to an existing account."""
        row = self._get_row(account_id)

        row.provider_id = provider_id
        row.uid = uid
        if photo_url:
            row.photo_url = photo_url
        if display_name:
            row.display_name = display_name

        self._session.commit()
        return _to_account(row)

    def set_stripe_customer_id(self, account_id: int, customer_id: str) -> Account:
        """Remember the payment-provider customer handle."""
        row = self._get_row(account_id)
        row.stripe_customer_id = customer_id
        self._session.commit()
        return _to_account(row)

    def consume_credit(self, account_id: int) -> Account:
        """Atomically spend one credit.

        Conditional UPDATE: decrement only finite balances above zero, so
        concurrent consumers cannot overdraw the account.
        """
        self._session.execute(
            update(AccountRow)
            .where(AccountRow.account_id == account_id)
            .where(AccountRow.credits_unlimited.is_(False))
            .where(AccountRow.credits_remaining > 0)
            .values(credits_remaining=AccountRow.credits_remaining - 1)
        )
        self._session.commit()

        row = self._get_row(account_id)
        self._session.refresh(row)
        return _to_account(row)

    def apply_package(
        self,
        account_id: int,
        tier: PackageTier,
        credits_to_add: int | None,
        payment_id: str | None = None,
    ) -> Account:
        """Upgrade tier and top up credits.

        The redeemed-payment row and the balance change commit together;
        a duplicate payment_id rolls both back.
        """
        row = self._get_row(account_id)
        updated = entitlements.apply_package(_to_account(row), tier, credits_to_add)

        if payment_id is not None:
            self._stage_redemption(account_id, payment_id)

        row.package_tier = updated.tier.value
        if isinstance(updated.credits, UnlimitedCredits):
            row.credits_unlimited = True
            row.credits_remaining = 0
        else:
            # Add relative to the stored balance so concurrent top-ups stack
            row.credits_remaining = AccountRow.credits_remaining + (credits_to_add or 0)

        self._commit_redemption(payment_id)
        self._session.refresh(row)
        return _to_account(row)

    def redeem_payment(self, account_id: int, payment_id: str) -> None:
        """Record a payment as spent."""
        self._get_row(account_id)
        self._stage_redemption(account_id, payment_id)
        self._commit_redemption(payment_id)

    def release_payment(self, payment_id: str) -> None:
        """Forget a redemption."""
        self._session.execute(
            delete(RedeemedPaymentRow).where(RedeemedPaymentRow.payment_id == payment_id)
        )
        self._session.commit()

    def _stage_redemption(self, account_id: int, payment_id: str) -> None:
        if self._session.get(RedeemedPaymentRow, payment_id) is not None:
            raise PaymentAlreadyUsedError(payment_id)
        self._session.add(RedeemedPaymentRow(payment_id=payment_id, account_id=account_id))

    def _commit_redemption(self, payment_id: str | None) -> None:
        # Primary key on payment_id catches a concurrent redemption

        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            if payment_id is not None and self._session.get(RedeemedPaymentRow, payment_id):
                raise PaymentAlreadyUsedError(payment_id) from e
            raise StoreError(f"Failed to update account: {e}") from e


class SqlItineraryRepository:
    """SQL implementation of ItineraryRepository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, document: ItineraryDocument) -> int:
        """Append a new document; the database assigns the next ID."""
        row = ItineraryRow(
            account_id=document.account_id,
            data=document.model_dump(mode="json", exclude={"id"}),
            created_at=document.created_at,
        )

        try:
            self._session.add(row)
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to insert itinerary: {type(e).__name__}") from e

        return row.itinerary_id

    def get(self, itinerary_id: int) -> ItineraryDocument | None:
        """Get document by ID."""
        row = self._session.get(ItineraryRow, itinerary_id)

        if row is None:
            return None

        return self._to_document(row)

    def update(self, document: ItineraryDocument) -> ItineraryDocument:
        """Replace a stored document keyed by its existing ID."""
        row = self._session.get(ItineraryRow, document.id) if document.id is not None else None

        if row is None:
            raise ItineraryNotFoundError(document.id or 0)

        try:
            row.data = document.model_dump(mode="json", exclude={"id"})
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to update itinerary: {type(e).__name__}") from e

        return document

    def list_by_account(self, account_id: int) -> list[ItineraryDocument]:
        """All documents owned by an account, newest first."""
        rows = (
            query_itineraries(self._session, RequestContext(account_id=account_id))
            .order_by(ItineraryRow.created_at.desc(), ItineraryRow.itinerary_id.desc())
            .all()
        )
        return [self._to_document(row) for row in rows]

    def count_by_account(self, account_id: int) -> int:
        """Number of documents owned by an account."""
        return query_itineraries(self._session, RequestContext(account_id=account_id)).count()

    @staticmethod
    def _to_document(row: ItineraryRow) -> ItineraryDocument:
        return ItineraryDocument.model_validate({**row.data, "id": row.itinerary_id})
