"""Ownership-safe query helpers."""

from sqlalchemy.orm import Query, Session

from backend.app.db.context import RequestContext
from backend.app.db.models import Itinerary


def query_itineraries(session: Session, ctx: RequestContext) -> Query:
    """Query itinerary table with account scoping enforced.

    Args:
        session: SQLAlchemy session
        ctx: Request context with account_id

    Returns:
        Query filtered by account_id
    """
    return session.query(Itinerary).filter(Itinerary.account_id == ctx.account_id)
