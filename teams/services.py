# teams/services.py
"""
Team membership engine.

Every mutation runs in a single transaction with the same shape:

1. lock the team row (``select_for_update``);
2. authorize and validate against fresh state, re-reading event bounds;
3. write seats, letting the ``(event, user)`` unique constraint reject a
   claim that raced past the checks;
4. bump ``Team.version`` only if it still holds the value read in step 1;
5. record the activity.

Any rejection raises a ``core.exceptions.DomainError`` and rolls the whole
transaction back. Nothing here retries.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.constants import (
    ACTIVITY_TEAM_CREATED,
    ACTIVITY_TEAM_DELETED,
    ACTIVITY_TEAM_INVITED,
    ACTIVITY_TEAM_INVITE_DECLINED,
    ACTIVITY_TEAM_INVITE_REVOKED,
    ACTIVITY_TEAM_JOINED,
    ACTIVITY_TEAM_LEFT,
    ACTIVITY_TEAM_RENAMED,
)
from core.exceptions import Conflict, Forbidden, InvalidArgument, NotFound
from core.services import ActivityService
from events.capacity import get_team_bounds

from .models import Team, TeamSeat

logger = logging.getLogger('teamup.teams')

User = get_user_model()


def normalize_team_name(name) -> str:
    """Strip a proposed team name and check it against the configured length bounds."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument("Team name is required")

    name = name.strip()
    min_length = settings.TEAM_NAME_MIN_LENGTH
    max_length = min(settings.TEAM_NAME_MAX_LENGTH, Team._meta.get_field('name').max_length)

    if len(name) < min_length:
        raise InvalidArgument(f"Team name must be at least {min_length} characters")
    if len(name) > max_length:
        raise InvalidArgument(f"Team name cannot exceed {max_length} characters")
    return name


class MembershipEngine:

    # ─────────────────────────────────────────────────────────────
    # Team lifecycle
    # ─────────────────────────────────────────────────────────────

    def create_team(self, actor_id, event_id, name) -> Team:
        name = normalize_team_name(name)

        with transaction.atomic():
            # Raises NotFound for a missing event
            get_team_bounds(event_id)

            seat = self._seat_for(event_id, actor_id)
            if seat is not None:
                if seat.is_member:
                    message = "You are already part of a team for this event"
                else:
                    message = "You have a pending team invite for this event. Decline it before creating a team"
                self._reject(Conflict(message), 'create', event=event_id, actor=actor_id)

            team = Team.objects.create(event_id=event_id, name=name, leader_id=actor_id)
            self._claim_seat(
                team,
                actor_id,
                TeamSeat.STATUS_MEMBER,
                conflict_message="You are already part of a team for this event",
            )

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_CREATED,
                target=team,
                event_id=event_id,
                metadata={'team_id': team.pk, 'team_name': team.name},
            )

        logger.info(f"Team created: team={team.pk}, event={event_id}, leader={actor_id}")
        return self._reload(team.pk)

    def rename_team(self, actor_id, team_id, name) -> Team:
        name = normalize_team_name(name)

        with transaction.atomic():
            team = self._lock_team(team_id)
            if team.leader_id != actor_id:
                self._reject(Forbidden("Only team leader can rename the team"), 'rename', team=team_id, actor=actor_id)

            old_name = team.name
            self._commit(team, name=name)

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_RENAMED,
                target=team,
                event_id=team.event_id,
                metadata={'team_id': team.pk, 'old_name': old_name, 'team_name': name},
            )

        logger.info(f"Team renamed: team={team.pk}, actor={actor_id}")
        return self._reload(team.pk)

    def delete_team(self, actor_id, team_id) -> None:
        """Delete a team. Its seats go with it, which voids every pending invite."""
        with transaction.atomic():
            team = self._lock_team(team_id)
            if team.leader_id != actor_id:
                self._reject(Forbidden("Only team leader can delete the team"), 'delete', team=team_id, actor=actor_id)

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_DELETED,
                target=team,
                event_id=team.event_id,
                metadata={
                    'team_id': team.pk,
                    'team_name': team.name,
                    'voided_invites': list(
                        team.seats.filter(status=TeamSeat.STATUS_INVITED).values_list('user_id', flat=True)
                    ),
                },
            )
            team.delete()

        logger.info(f"Team deleted: team={team_id}, actor={actor_id}")

    # ─────────────────────────────────────────────────────────────
    # Invitations
    # ─────────────────────────────────────────────────────────────

    def invite(self, actor_id, team_id, target_user_id) -> Team:
        with transaction.atomic():
            team = self._lock_team(team_id)
            context = {'team': team.pk, 'event': team.event_id, 'actor': actor_id, 'target': target_user_id}

            if team.leader_id != actor_id:
                self._reject(Forbidden("Only team leader can invite members"), 'invite', **context)

            bounds = get_team_bounds(team.event_id)
            if self._member_count(team) >= bounds.max:
                self._reject(Conflict("Team is already full"), 'invite', **context)

            if not User.objects.filter(pk=target_user_id).exists():
                self._reject(NotFound("User not found"), 'invite', **context)

            seat = self._seat_for(team.event_id, target_user_id)
            if seat is not None:
                if seat.team_id != team.pk:
                    message = "User is already part of another team for this event"
                elif seat.is_member:
                    message = "User is already a team member"
                else:
                    message = "User already has a pending invite"
                self._reject(Conflict(message), 'invite', **context)

            self._claim_seat(
                team,
                target_user_id,
                TeamSeat.STATUS_INVITED,
                invited_by_id=actor_id,
                conflict_message="User is already part of another team for this event",
            )
            self._commit(team)

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_INVITED,
                target=team,
                event_id=team.event_id,
                metadata={'team_id': team.pk, 'team_name': team.name, 'user_id': target_user_id},
            )

        logger.info(f"Team invite sent: team={team.pk}, event={team.event_id}, target={target_user_id}")
        return self._reload(team.pk)

    def revoke_invite(self, actor_id, team_id, target_user_id) -> Team:
        """Leader withdraws a pending invite, e.g. one that can no longer be accepted."""
        with transaction.atomic():
            team = self._lock_team(team_id)
            context = {'team': team.pk, 'actor': actor_id, 'target': target_user_id}

            if team.leader_id != actor_id:
                self._reject(Forbidden("Only team leader can revoke invites"), 'revoke', **context)

            seat = self._locked_seat(team, target_user_id)
            if seat is None or not seat.is_invite:
                self._reject(Conflict("User does not have a pending invite to this team"), 'revoke', **context)

            seat.delete()
            self._commit(team)

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_INVITE_REVOKED,
                target=team,
                event_id=team.event_id,
                metadata={'team_id': team.pk, 'user_id': target_user_id},
            )

        logger.info(f"Team invite revoked: team={team.pk}, target={target_user_id}")
        return self._reload(team.pk)

    def accept_invite(self, actor_id, team_id) -> Team:
        with transaction.atomic():
            team = self._lock_team(team_id)
            context = {'team': team.pk, 'event': team.event_id, 'actor': actor_id}

            seat = self._locked_seat(team, actor_id)
            if seat is None or not seat.is_invite:
                message = (
                    "You are already a member of this team"
                    if seat is not None
                    else "You do not have an invite to this team"
                )
                self._reject(Conflict(message), 'accept', **context)

            # The team may have filled, or the event shrunk, since the invite was sent.
            # The invite stays in place either way.
            bounds = get_team_bounds(team.event_id)
            if self._member_count(team) >= bounds.max:
                self._reject(Conflict("Team is already full"), 'accept', **context)

            seat.status = TeamSeat.STATUS_MEMBER
            seat.joined_at = timezone.now()
            seat.save(update_fields=['status', 'joined_at'])
            self._commit(team)

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_JOINED,
                target=team,
                event_id=team.event_id,
                metadata={'team_id': team.pk, 'team_name': team.name},
            )

        logger.info(f"Team invite accepted: team={team.pk}, event={team.event_id}, user={actor_id}")
        return self._reload(team.pk)

    def decline_invite(self, actor_id, team_id) -> Team:
        with transaction.atomic():
            team = self._lock_team(team_id)

            seat = self._locked_seat(team, actor_id)
            if seat is None or not seat.is_invite:
                self._reject(
                    Conflict("You do not have an invite to this team"),
                    'decline', team=team.pk, actor=actor_id,
                )

            seat.delete()
            self._commit(team)

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_INVITE_DECLINED,
                target=team,
                event_id=team.event_id,
                metadata={'team_id': team.pk, 'team_name': team.name},
            )

        logger.info(f"Team invite declined: team={team.pk}, user={actor_id}")
        return self._reload(team.pk)

    # ─────────────────────────────────────────────────────────────
    # Membership
    # ─────────────────────────────────────────────────────────────

    def leave(self, actor_id, team_id) -> Team:
        with transaction.atomic():
            team = self._lock_team(team_id)
            context = {'team': team.pk, 'actor': actor_id}

            seat = self._locked_seat(team, actor_id)
            if seat is None or not seat.is_member:
                self._reject(Conflict("You are not a member of this team"), 'leave', **context)

            if team.leader_id == actor_id:
                self._reject(Conflict("Team leader cannot leave. Delete the team instead."), 'leave', **context)

            seat.delete()
            self._commit(team)

            ActivityService.log_activity(
                actor_id=actor_id,
                verb=ACTIVITY_TEAM_LEFT,
                target=team,
                event_id=team.event_id,
                metadata={'team_id': team.pk, 'team_name': team.name},
            )

        logger.info(f"Team member left: team={team.pk}, user={actor_id}")
        return self._reload(team.pk)

    # ─────────────────────────────────────────────────────────────
    # Storage helpers
    # ─────────────────────────────────────────────────────────────

    def _lock_team(self, team_id) -> Team:
        try:
            return Team.objects.select_for_update().get(pk=team_id)
        except Team.DoesNotExist:
            raise NotFound("Team not found")

    def _locked_seat(self, team, user_id):
        return TeamSeat.objects.select_for_update().filter(team=team, user_id=user_id).first()

    def _seat_for(self, event_id, user_id):
        return TeamSeat.objects.filter(event_id=event_id, user_id=user_id).first()

    def _member_count(self, team) -> int:
        return TeamSeat.objects.filter(team=team, status=TeamSeat.STATUS_MEMBER).count()

    def _claim_seat(self, team, user_id, status, invited_by_id=None, conflict_message=None) -> TeamSeat:
        try:
            with transaction.atomic():
                return TeamSeat.objects.create(
                    team=team,
                    event_id=team.event_id,
                    user_id=user_id,
                    status=status,
                    invited_by_id=invited_by_id,
                    joined_at=timezone.now() if status == TeamSeat.STATUS_MEMBER else None,
                )
        except IntegrityError:
            self._reject(
                Conflict(conflict_message or "User already holds a team or invite for this event"),
                'claim', team=team.pk, event=team.event_id, user=user_id,
            )

    def _commit(self, team, **changes) -> None:
        updated = (
            Team.objects
            .filter(pk=team.pk, version=team.version)
            .update(version=F('version') + 1, updated_at=timezone.now(), **changes)
        )
        if updated != 1:
            self._reject(
                Conflict("Team was changed by another request. Reload it and try again"),
                'commit', team=team.pk, version=team.version,
            )
        team.version += 1
        for field, value in changes.items():
            setattr(team, field, value)

    def _reload(self, team_id) -> Team:
        return Team.objects.with_roster().get(pk=team_id)

    def _reject(self, error, operation, **context):
        details = ", ".join(f"{key}={value}" for key, value in context.items())
        logger.warning(f"Team {operation} rejected: {error.detail} ({details})")
        raise error
