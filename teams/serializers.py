# teams/serializers.py
from rest_framework import serializers

from events.serializers import EventSummarySerializer
from users.serializers import UserSummarySerializer
from .models import Team


class TeamSerializer(serializers.ModelSerializer):
    """Team with its event, leader, members and pending invites"""
    event = EventSummarySerializer(read_only=True)
    leader = UserSummarySerializer(read_only=True)
    members = serializers.SerializerMethodField()
    invites = serializers.SerializerMethodField()
    current_size = serializers.IntegerField(read_only=True)
    is_full = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = [
            'id', 'name', 'event', 'leader', 'members', 'invites',
            'current_size', 'is_full', 'version', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_members(self, obj):
        return UserSummarySerializer([seat.user for seat in obj.member_seats], many=True).data

    def get_invites(self, obj):
        return UserSummarySerializer([seat.user for seat in obj.invite_seats], many=True).data

    def get_is_full(self, obj):
        return obj.current_size >= obj.event.team_size_max


class TeamCreateSerializer(serializers.Serializer):
    event_id = serializers.IntegerField(min_value=1)
    # Length rules live in MembershipEngine so every caller gets them
    name = serializers.CharField(trim_whitespace=False)


class TeamRenameSerializer(serializers.Serializer):
    name = serializers.CharField(trim_whitespace=False)


class TeamInviteSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)
