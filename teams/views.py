# teams/views.py - Team Formation API Views

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from teams.queries import TeamQueryService
from teams.serializers import (
    TeamSerializer,
    TeamCreateSerializer,
    TeamRenameSerializer,
    TeamInviteSerializer,
)
from teams.services import MembershipEngine


class TeamViewSet(viewsets.ViewSet):
    """
    API for forming and managing event teams

    Every write goes through MembershipEngine, which enforces team size
    limits and one team per user per event. Reads go through
    TeamQueryService.
    """
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r'\d+'

    engine = MembershipEngine()
    queries = TeamQueryService()

    def _team_response(self, team, status_code=status.HTTP_200_OK):
        return Response(TeamSerializer(team).data, status=status_code)

    def _list_response(self, teams):
        return Response(TeamSerializer(teams, many=True).data)

    # ─────────────────────────────────────────────────────────────
    # Team lifecycle
    # ─────────────────────────────────────────────────────────────

    def create(self, request):
        """
        POST /api/teams/
        Body: {"event_id": 1, "name": "Team Rocket"}
        """
        serializer = TeamCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        team = self.engine.create_team(
            request.user.id,
            serializer.validated_data['event_id'],
            serializer.validated_data['name'],
        )
        return self._team_response(team, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self._team_response(self.queries.get_team(int(pk)))

    def partial_update(self, request, pk=None):
        """Rename a team (team leader only)"""
        serializer = TeamRenameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        team = self.engine.rename_team(request.user.id, int(pk), serializer.validated_data['name'])
        return self._team_response(team)

    def destroy(self, request, pk=None):
        """Delete a team (team leader only). Pending invites to it are voided."""
        self.engine.delete_team(request.user.id, int(pk))
        return Response({'message': 'Team deleted successfully'})

    # ─────────────────────────────────────────────────────────────
    # Invitations
    # ─────────────────────────────────────────────────────────────

    @action(detail=True, methods=['post'], url_path='invite')
    def invite(self, request, pk=None):
        """
        Invite a user to the team (team leader only)

        POST /api/teams/<id>/invite/
        Body: {"user_id": 42}
        """
        serializer = TeamInviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        team = self.engine.invite(request.user.id, int(pk), serializer.validated_data['user_id'])
        return self._team_response(team)

    @action(detail=True, methods=['delete'], url_path=r'invites/(?P<user_id>\d+)')
    def revoke_invite(self, request, pk=None, user_id=None):
        """Withdraw a pending invite (team leader only)"""
        team = self.engine.revoke_invite(request.user.id, int(pk), int(user_id))
        return self._team_response(team)

    @action(detail=True, methods=['post'], url_path='join')
    def join(self, request, pk=None):
        """Accept an invite to this team"""
        team = self.engine.accept_invite(request.user.id, int(pk))
        return self._team_response(team)

    @action(detail=True, methods=['post'], url_path='decline')
    def decline(self, request, pk=None):
        team = self.engine.decline_invite(request.user.id, int(pk))
        return Response({
            'message': 'Invitation declined',
            'team': TeamSerializer(team).data,
        })

    # ─────────────────────────────────────────────────────────────
    # Membership
    # ─────────────────────────────────────────────────────────────

    @action(detail=True, methods=['post'], url_path='leave')
    def leave(self, request, pk=None):
        """Leave a team (members only, leaders cannot leave)"""
        team = self.engine.leave(request.user.id, int(pk))
        return Response({
            'message': 'Successfully left team',
            'team': TeamSerializer(team).data,
        })

    # ─────────────────────────────────────────────────────────────
    # Listings
    # ─────────────────────────────────────────────────────────────

    @action(detail=False, methods=['get'], url_path=r'event/(?P<event_id>\d+)')
    def by_event(self, request, event_id=None):
        return self._list_response(self.queries.teams_for_event(int(event_id)))

    @action(detail=False, methods=['get'], url_path='my-teams')
    def my_teams(self, request):
        return self._list_response(self.queries.teams_for_member(request.user.id))

    @action(detail=False, methods=['get'], url_path='my-invites')
    def my_invites(self, request):
        return self._list_response(self.queries.teams_inviting(request.user.id))
