# teams/queries.py
from core.exceptions import NotFound
from .models import Team


class TeamQueryService:
    """Read-only team lookups. Every result comes with its roster preloaded."""

    def _teams(self):
        return Team.objects.with_roster().order_by('created_at', 'id')

    def get_team(self, team_id) -> Team:
        try:
            return self._teams().get(pk=team_id)
        except Team.DoesNotExist:
            raise NotFound("Team not found")

    def teams_for_event(self, event_id):
        return self._teams().for_event(event_id)

    def teams_for_member(self, user_id):
        return self._teams().with_member(user_id)

    def teams_inviting(self, user_id):
        return self._teams().inviting(user_id)
