# teams/urls.py - Teams API

from rest_framework.routers import SimpleRouter
from .views import TeamViewSet

# SimpleRouter: DefaultRouter's API root would shadow POST on the empty prefix
router = SimpleRouter()
router.register(r'', TeamViewSet, basename='teams')

urlpatterns = router.urls
