# blood_requests/urls.py

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

# Mounted at /api/requests/, so the viewset is registered without a prefix
router = SimpleRouter()
router.register(r'', views.BloodRequestViewSet, basename='blood-request')

app_name = 'blood_requests'

urlpatterns = [
    path('', include(router.urls)),
]

# Available endpoints:
# GET    /api/requests/                        - Other users' requests
# POST   /api/requests/                        - Create a request
# GET    /api/requests/{id}/                   - Request detail
# PATCH  /api/requests/{id}/                   - Update (owner or admin)
# DELETE /api/requests/{id}/                   - Delete (owner or admin)
# POST   /api/requests/{id}/cancel/            - Cancel (owner or admin)
# POST   /api/requests/{id}/accept/            - Donor accepts
# POST   /api/requests/{id}/decline/           - Donor declines or withdraws
# POST   /api/requests/{id}/donation-proof/    - Donor submits proof
# POST   /api/requests/{id}/donation-status/   - Requester verifies a donation
# GET    /api/requests/mine/                   - My requests
# GET    /api/requests/history/                - My request history
# GET    /api/requests/dashboard/              - Requester dashboard
# GET    /api/requests/nearby/                 - Nearby requests
