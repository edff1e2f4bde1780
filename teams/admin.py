from django.contrib import admin
from .models import Team, TeamSeat


class TeamSeatInline(admin.TabularInline):
    model = TeamSeat
    extra = 0
    fields = ('user', 'status', 'invited_by', 'created_at', 'joined_at')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        # Seats change only through MembershipEngine
        return False


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ('name', 'event', 'leader', 'version', 'created_at')
    list_filter = ('event',)
    search_fields = ('name', 'event__title', 'leader__username')
    readonly_fields = ('event', 'leader', 'version', 'created_at', 'updated_at')
    inlines = [TeamSeatInline]


@admin.register(TeamSeat)
class TeamSeatAdmin(admin.ModelAdmin):
    list_display = ('user', 'team', 'event', 'status', 'created_at', 'joined_at')
    list_filter = ('status', 'event')
    search_fields = ('user__username', 'team__name')
    readonly_fields = ('team', 'event', 'user', 'status', 'invited_by', 'created_at', 'joined_at')
