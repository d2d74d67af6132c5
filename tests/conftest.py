import itertools
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import CustomUser
from blood_requests.models import BloodRequest
from bloodhero import celery_app
from donors.models import DonorProfile


@pytest.fixture(autouse=True)
def eager_celery():
    """Run Celery tasks inline so queued work happens inside the test"""
    # The app reads Django settings under the CELERY_ namespace
    previous = celery_app.conf.CELERY_TASK_ALWAYS_EAGER
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = True
    yield
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = previous


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path / 'media')
    return settings.MEDIA_ROOT


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(user_type='requester', **kwargs):
        n = next(counter)
        defaults = {
            'username': f'{user_type}{n}',
            'email': f'{user_type}{n}@example.com',
            'first_name': user_type.title(),
            'last_name': str(n),
            'user_type': user_type,
        }
        defaults.update(kwargs)
        return CustomUser.objects.create_user(password='s3cret-pass', **defaults)

    return _make


@pytest.fixture
def make_donor(make_user):
    def _make(blood_type='O+', city='Kathmandu', state='Bagmati', user=None, **kwargs):
        user = user or make_user('donor')
        return DonorProfile.objects.create(
            user=user, blood_type=blood_type, city=city, state=state, **kwargs
        )

    return _make


@pytest.fixture
def request_data():
    def _data(**overrides):
        data = {
            'patient_name': 'Sita Sharma',
            'blood_type': 'A+',
            'units_needed': 2,
            'urgency': 'normal',
            'reason': 'Scheduled surgery',
            'required_by': timezone.now() + timedelta(days=2),
            'hospital_name': 'Bir Hospital',
            'hospital_address': 'Mahaboudha',
            'hospital_city': 'Kathmandu',
            'hospital_state': 'Bagmati',
            'contact_name': 'Ram Sharma',
            'contact_phone': '9800000000',
        }
        data.update(overrides)
        return data

    return _data


@pytest.fixture
def requester(make_user):
    return make_user('requester')


@pytest.fixture
def make_request(requester, request_data):
    """Insert a blood request directly, without the lifecycle side effects"""
    def _make(owner=None, **overrides):
        return BloodRequest.objects.create(requested_by=owner or requester, **request_data(**overrides))

    return _make


@pytest.fixture
def blood_request(make_request):
    return make_request()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _login(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _login
