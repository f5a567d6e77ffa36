"""Request context for ownership enforcement."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Request context containing the authenticated account identity.

    Used to enforce document ownership in all store operations.
    """

    account_id: int
