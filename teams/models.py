# teams/models.py
from django.db import models
from django.db.models import Prefetch
from django.conf import settings


class TeamQuerySet(models.QuerySet):
    def for_event(self, event_id):
        return self.filter(event_id=event_id)

    def with_member(self, user_id):
        return self.filter(seats__user_id=user_id, seats__status=TeamSeat.STATUS_MEMBER)

    def inviting(self, user_id):
        return self.filter(seats__user_id=user_id, seats__status=TeamSeat.STATUS_INVITED)

    def with_roster(self):
        """Load event, leader and every seat (with its user) in three queries."""
        return self.select_related('event', 'leader').prefetch_related(
            Prefetch('seats', queryset=TeamSeat.objects.select_related('user').order_by('id'))
        )


class Team(models.Model):
    """
    A participant team for one event.

    ``event`` and ``leader`` never change after creation. ``version`` is
    bumped by every committed membership change and is compared on write,
    so a change computed from a stale read cannot be committed.
    """
    event = models.ForeignKey('events.Event', on_delete=models.CASCADE, related_name='teams')
    name = models.CharField(max_length=100)
    leader = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='led_teams')
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TeamQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['event', 'created_at'], name='team_event_created_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.event_id})"

    def _seats_with_status(self, status):
        return [seat for seat in self.seats.all() if seat.status == status]

    @property
    def member_seats(self):
        seats = self._seats_with_status(TeamSeat.STATUS_MEMBER)
        return sorted(seats, key=lambda s: (s.joined_at or s.created_at, s.id))

    @property
    def invite_seats(self):
        seats = self._seats_with_status(TeamSeat.STATUS_INVITED)
        return sorted(seats, key=lambda s: (s.created_at, s.id))

    @property
    def member_ids(self):
        return [seat.user_id for seat in self.member_seats]

    @property
    def invite_ids(self):
        return [seat.user_id for seat in self.invite_seats]

    @property
    def current_size(self):
        return len(self.member_seats)


class TeamSeat(models.Model):
    """
    A user's claim on a team within one event: either a membership or a
    pending invite.

    ``event`` duplicates ``team.event`` so the database can hold a user to a
    single seat per event. That one constraint keeps a user in at most one
    team per event, forbids invites to a second team, and keeps a team's
    members and invites disjoint.
    """
    STATUS_MEMBER = 'member'
    STATUS_INVITED = 'invited'

    STATUS_CHOICES = [
        (STATUS_MEMBER, 'Member'),
        (STATUS_INVITED, 'Invited'),
    ]

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='seats')
    event = models.ForeignKey('events.Event', on_delete=models.CASCADE, related_name='team_seats')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='team_seats')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES)
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sent_team_invites',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    joined_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['event', 'user'], name='teamseat_one_per_user_event'),
        ]
        indexes = [
            models.Index(fields=['team', 'status'], name='teamseat_team_status_idx'),
            models.Index(fields=['user', 'status'], name='teamseat_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} {self.status} in team {self.team_id}"

    @property
    def is_member(self):
        return self.status == self.STATUS_MEMBER

    @property
    def is_invite(self):
        return self.status == self.STATUS_INVITED
