# donors/urls.py

from django.urls import path
from donors import views

app_name = 'donors'

urlpatterns = [
    # Profile
    path('me/', views.my_profile, name='my_profile'),

    # Accepted requests
    path('me/accepted-requests/', views.my_accepted_requests, name='my_accepted_requests'),
]
