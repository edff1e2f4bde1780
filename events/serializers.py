from rest_framework import serializers
from .models import Event


class EventSummarySerializer(serializers.ModelSerializer):
    """Event fields shown alongside a team."""
    team_size = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = ['id', 'title', 'start_time', 'end_time', 'team_size']

    def get_team_size(self, obj):
        return {'min': obj.team_size_min, 'max': obj.team_size_max}
