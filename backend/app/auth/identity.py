"""Local and external sign-in flows on top of the account store."""

import logging
import time

from pydantic import BaseModel

from backend.app.auth.passwords import hash_password, random_password, verify_password
from backend.app.db.repositories import AccountRepository
from backend.app.errors import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    MissingProviderIdentityError,
)
from backend.app.models.account import Account, NewAccount

logger = logging.getLogger(__name__)


class ExternalIdentity(BaseModel):
    """Profile asserted by an external identity provider."""

    provider_id: str | None = None
    uid: str | None = None
    username: str | None = None
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    photo_url: str | None = None


def register(
    accounts: AccountRepository,
    username: str,
    password: str,
    starter_credits: int,
    *,
    email: str | None = None,
    display_name: str | None = None,
) -> Account:
    """Create a local account with a starter credit grant.

    Raises:
        DuplicateUsernameError: If the username is taken (case-insensitive)
    """
    if accounts.get_by_username(username) is not None:
        raise DuplicateUsernameError(username)

    account = accounts.create_account(
        NewAccount(
            username=username,
            password_hash=hash_password(password),
            email=email,
            display_name=display_name,
        ),
        starter_credits,
    )
    logger.info(f"Registered account {account.id}")
    return account


def authenticate(accounts: AccountRepository, username: str, password: str) -> Account:
    """Verify local credentials.

    Raises:
        InvalidCredentialsError: Unknown username or wrong password
    """
    account = accounts.get_by_username(username)
    if account is None:
        raise InvalidCredentialsError()
    if not verify_password(password, accounts.get_password_hash(account.id)):
        raise InvalidCredentialsError()
    return account


def sign_in_external(
    accounts: AccountRepository, identity: ExternalIdentity, starter_credits: int
) -> Account:
    """Resolve an external identity to an account, creating or linking as needed.

    Lookup order: (provider_id, uid), then username. A local account found by
    username is linked only when it has no provider info yet and the
    identity carries a verified email equal to the account's email. Any
    other username match gets a fresh account under a suffixed username.

    Raises:
        MissingProviderIdentityError: If provider_id or uid is missing
    """
    if not identity.provider_id or not identity.uid:
        raise MissingProviderIdentityError()

    account = accounts.get_by_provider(identity.provider_id, identity.uid)
    if account is None and identity.username:
        candidate = accounts.get_by_username(identity.username)
        if candidate is not None and _may_link(candidate, identity):
            account = candidate

    if account is None:
        username = _pick_username(accounts, identity)
        account = accounts.create_account(
            NewAccount(
                username=username,
                password_hash=hash_password(random_password()),
                email=identity.email,
                display_name=identity.display_name,
                photo_url=identity.photo_url,
                provider_id=identity.provider_id,
                uid=identity.uid,
            ),
            starter_credits,
        )
        logger.info(f"Created account {account.id} from external identity")
        return account

    if not account.provider_id or not account.uid:
        account = accounts.link_identity(
            account.id,
            identity.provider_id,
            identity.uid,
            photo_url=identity.photo_url,
            display_name=identity.display_name,
        )
        logger.info(f"Linked external identity to account {account.id}")

    return account


def _may_link(account: Account, identity: ExternalIdentity) -> bool:
    if account.provider_id or account.uid:
        return False
    if not identity.email_verified or not identity.email or not account.email:
        return False
    return account.email.casefold() == identity.email.casefold()


def _pick_username(accounts: AccountRepository, identity: ExternalIdentity) -> str:
    suffix = str(int(time.time() * 1000))
    candidate = identity.username or (identity.email.split("@")[0] if identity.email else "")
    if not candidate:
        return f"user{suffix}"
    if accounts.get_by_username(candidate) is not None:
        return f"{candidate}{suffix}"
    return candidate
