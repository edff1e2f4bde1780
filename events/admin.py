from django.contrib import admin
from .models import Event

@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    """
    Event admin for organizers. Organizers only see and edit events they
    organize; platform admins see all of them. Students get no access.
    """
    list_display = ('title', 'organizer', 'team_size_min', 'team_size_max', 'start_time')
    list_filter = ('start_time',)
    search_fields = ('title', 'description', 'organizer__username')

    def _can_organize(self, request):
        user = request.user
        return user.is_active and user.is_staff and user.can_organize_events

    def _owns(self, request, obj):
        return obj is None or request.user.manages_all_events or obj.organizer_id == request.user.id

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.manages_all_events:
            return qs
        return qs.filter(organizer=request.user)

    def get_exclude(self, request, obj=None):
        if request.user.manages_all_events:
            return super().get_exclude(request, obj)
        return ('organizer',)

    def save_model(self, request, obj, form, change):
        if not change and not request.user.manages_all_events:
            obj.organizer = request.user
        super().save_model(request, obj, form, change)

    def has_module_permission(self, request):
        return self._can_organize(request)

    def has_view_permission(self, request, obj=None):
        return self._can_organize(request) and self._owns(request, obj)

    def has_add_permission(self, request):
        return self._can_organize(request)

    def has_change_permission(self, request, obj=None):
        return self._can_organize(request) and self._owns(request, obj)

    def has_delete_permission(self, request, obj=None):
        return self._can_organize(request) and self._owns(request, obj)
