# events/capacity.py
"""
Team-size lookup for events.

Bounds are organizer-mutable, so every call reads the event row again.
Call it inside the transaction that relies on the answer.
"""
from dataclasses import dataclass
import logging

from core.exceptions import NotFound
from .models import Event

logger = logging.getLogger('teamup.events')


@dataclass(frozen=True)
class TeamBounds:
    min: int
    max: int


def get_team_bounds(event_id) -> TeamBounds:
    row = (
        Event.objects
        .filter(pk=event_id)
        .values_list('team_size_min', 'team_size_max')
        .first()
    )
    if row is None:
        logger.info(f"Team bounds requested for missing event {event_id}")
        raise NotFound("Event not found")
    return TeamBounds(min=row[0], max=row[1])
