# events/models.py
from django.db import models
from django.conf import settings


class Event(models.Model):
    """
    An organizer-published event that participants form teams for.

    Only ``team_size_min``/``team_size_max`` matter to team formation.
    Organizers may change them at any time, so readers must not cache them.
    """
    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='organized_events'
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    start_time = models.DateTimeField(blank=True, null=True)
    end_time = models.DateTimeField(blank=True, null=True)

    # Team size constraints
    team_size_min = models.PositiveIntegerField(default=1)
    team_size_max = models.PositiveIntegerField(default=4)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(team_size_min__gte=1),
                name='event_team_size_min_gte_1',
            ),
            models.CheckConstraint(
                condition=models.Q(team_size_max__gte=models.F('team_size_min')),
                name='event_team_size_max_gte_min',
            ),
        ]
        indexes = [
            models.Index(
                fields=['start_time'],
                name='event_start_idx',
            ),
        ]

    def __str__(self):
        return self.title
