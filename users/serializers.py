from rest_framework import serializers
from .models import User


class UserSummarySerializer(serializers.ModelSerializer):
    """Public display fields for a user listed on a team."""
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'full_name', 'email', 'institution', 'skills']

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username
