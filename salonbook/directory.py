"""User lookups needed by the scheduling and reminder code."""
from __future__ import annotations

from .errors import ResolutionError
from .extensions import db
from .models import Scheduling, User


def get_user(user_id: int | None) -> User | None:
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def resolve_owner(scheduling: Scheduling) -> User:
    """Return the owner of the establishment hosting ``scheduling``.

    Uses the eagerly loaded ``establishment.owner`` when the row came from the
    reminder query; raises ``ResolutionError`` when any link is missing.
    """
    establishment = scheduling.establishment
    if establishment is None:
        raise ResolutionError(f"Scheduling {scheduling.scheduling_id} has no establishment")
    if establishment.owner_id is None:
        raise ResolutionError(f"Establishment {establishment.establishment_id} has no owner")

    owner = establishment.owner
    if owner is None:
        raise ResolutionError(
            f"Owner {establishment.owner_id} of establishment "
            f"{establishment.establishment_id} not found"
        )
    return owner
