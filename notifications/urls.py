# notifications/urls.py

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

# Mounted at /api/notifications/
router = SimpleRouter()
router.register(r'', views.NotificationViewSet, basename='notification')

app_name = 'notifications'

urlpatterns = [
    path('', include(router.urls)),
]

# Available endpoints:
# GET  /api/notifications/              - My notifications (?unread=true)
# GET  /api/notifications/{id}/         - One notification
# POST /api/notifications/{id}/read/    - Mark as read
# POST /api/notifications/read-all/     - Mark all as read
