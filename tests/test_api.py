from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from blood_requests import lifecycle
from blood_requests.models import BloodRequest, DonorResponse
from notifications.models import Notification

pytestmark = pytest.mark.django_db

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


def create_payload(**overrides):
    payload = {
        'patient_name': 'Gita Thapa',
        'blood_type': 'B+',
        'units_needed': 1,
        'urgency': 'urgent',
        'reason': 'Accident',
        'required_by': (timezone.now() + timedelta(days=1)).isoformat(),
        'hospital': {
            'name': 'Teaching Hospital',
            'address': 'Maharajgunj',
            'city': 'Kathmandu',
            'state': 'Bagmati',
        },
        'contact_info': {
            'name': 'Hari Thapa',
            'phone': '9811111111',
            'relationship': 'Brother',
        },
        'location': [85.3300, 27.7350],
    }
    payload.update(overrides)
    return payload


def test_requires_authentication(api_client):
    assert api_client.get('/api/requests/').status_code == 401


def test_obtain_jwt_token(api_client, make_user):
    user = make_user('donor')
    response = api_client.post(
        '/api/auth/token/', {'username': user.username, 'password': 's3cret-pass'}, format='json'
    )
    assert response.status_code == 200
    assert 'access' in response.data and 'refresh' in response.data


def test_create_request(client_for, requester):
    response = client_for(requester).post('/api/requests/', create_payload(), format='json')

    assert response.status_code == 201, response.data
    assert response.data['status'] == 'pending'
    assert response.data['hospital']['name'] == 'Teaching Hospital'
    assert response.data['contact_info']['relationship'] == 'Brother'
    assert response.data['location'] == [85.33, 27.735]
    assert response.data['requested_by']['id'] == requester.id
    assert response.data['max_donors_reached'] is False

    blood_request = BloodRequest.objects.get(id=response.data['id'])
    assert blood_request.hospital_city == 'Kathmandu'
    assert blood_request.longitude == 85.33


def test_create_request_validation_error(client_for, requester):
    response = client_for(requester).post(
        '/api/requests/', create_payload(blood_type='Z+', location=[500, 0]), format='json'
    )
    assert response.status_code == 400
    assert 'blood_type' in response.data
    assert 'location' in response.data


def test_create_request_rate_limited(client_for, requester, request_data):
    for _ in range(15):
        lifecycle.create_request(requester.id, request_data())

    response = client_for(requester).post('/api/requests/', create_payload(), format='json')

    assert response.status_code == 429
    assert response.data['limit'] == 15


def test_list_shows_other_users_requests(client_for, make_request, make_user, requester):
    make_request()
    other = make_request(owner=make_user())

    response = client_for(requester).get('/api/requests/')

    assert response.status_code == 200
    assert [item['id'] for item in response.data] == [other.id]


def test_accept_flow_and_capacity(client_for, blood_request, make_donor):
    donors = [make_donor() for _ in range(4)]

    for donor in donors[:3]:
        response = client_for(donor.user).post(f'/api/requests/{blood_request.id}/accept/')
        assert response.status_code == 200, response.data

    assert response.data['request']['accepted_donors_count'] == 3
    assert response.data['request']['max_donors_reached'] is True

    response = client_for(donors[3].user).post(f'/api/requests/{blood_request.id}/accept/')
    assert response.status_code == 400
    assert 'maximum number of donors (3)' in str(response.data['detail'])

    response = client_for(donors[0].user).post(f'/api/requests/{blood_request.id}/accept/')
    assert response.status_code == 400
    assert blood_request.responses.count() == 3


def test_accept_records_given_time(client_for, blood_request, make_donor):
    donor = make_donor()
    response = client_for(donor.user).post(
        f'/api/requests/{blood_request.id}/accept/', {'accepted_at': '2026-01-01T10:00:00Z'}, format='json'
    )

    assert response.status_code == 200, response.data
    entry = DonorResponse.objects.get(donor=donor)
    expected = datetime(2026, 1, 1, 10, 0, tzinfo=dt_timezone.utc)
    assert entry.accepted_date == expected
    assert entry.response_date == expected


def test_accept_rejects_malformed_time(client_for, blood_request, make_donor):
    donor = make_donor()
    response = client_for(donor.user).post(
        f'/api/requests/{blood_request.id}/accept/', {'accepted_at': 'yesterday'}, format='json'
    )

    assert response.status_code == 400
    assert 'accepted_at' in response.data
    assert not blood_request.responses.exists()


def test_accept_without_donor_profile(client_for, blood_request, make_user):
    response = client_for(make_user()).post(f'/api/requests/{blood_request.id}/accept/')
    assert response.status_code == 404


def test_accept_missing_request(client_for, make_donor):
    donor = make_donor()
    response = client_for(donor.user).post('/api/requests/999999/accept/')
    assert response.status_code == 404


def test_decline_and_withdraw(client_for, blood_request, make_donor):
    donor = make_donor()
    client = client_for(donor.user)

    client.post(f'/api/requests/{blood_request.id}/accept/')
    response = client.post(f'/api/requests/{blood_request.id}/decline/')

    assert response.status_code == 200
    assert DonorResponse.objects.get(donor=donor).status == DonorResponse.STATUS_DECLINED


def test_upload_proof_and_confirm(client_for, blood_request, make_donor, requester):
    donor = make_donor()
    donor_client = client_for(donor.user)
    donor_client.post(f'/api/requests/{blood_request.id}/accept/')

    upload = SimpleUploadedFile('slip.png', PNG_BYTES, content_type='image/png')
    response = donor_client.post(
        f'/api/requests/{blood_request.id}/donation-proof/',
        {'donation_proof': upload, 'notes': 'Donated 1 unit'},
        format='multipart',
    )

    assert response.status_code == 200, response.data
    assert response.data['status'] == 'pending_confirmation'
    assert response.data['photo_url'].startswith('http://testserver/media/donation-proof/')
    assert response.data['photo_url'].endswith(f'-{donor.user.id}.png')

    response = client_for(requester).post(
        f'/api/requests/{blood_request.id}/donation-status/',
        {'donor_id': donor.id, 'status': 'confirmed', 'feedback': 'Thank you'},
        format='json',
    )
    assert response.status_code == 200
    assert response.data['status'] == 'donated'

    detail = client_for(requester).get(f'/api/requests/{blood_request.id}/')
    assert detail.data['status'] == 'fulfilled'
    assert detail.data['donors'][0]['status'] == 'donated'

    response = client_for(requester).post(
        f'/api/requests/{blood_request.id}/donation-status/',
        {'donor_id': donor.id, 'status': 'confirmed'},
        format='json',
    )
    assert response.status_code == 409


def test_upload_rejects_non_images(client_for, blood_request, make_donor):
    donor = make_donor()
    client = client_for(donor.user)
    client.post(f'/api/requests/{blood_request.id}/accept/')

    upload = SimpleUploadedFile('slip.pdf', b'%PDF-1.4', content_type='application/pdf')
    response = client.post(
        f'/api/requests/{blood_request.id}/donation-proof/', {'donation_proof': upload}, format='multipart'
    )

    assert response.status_code == 400
    assert 'donation_proof' in response.data


def test_proof_url_instead_of_upload(client_for, blood_request, make_donor):
    donor = make_donor()
    client = client_for(donor.user)
    client.post(f'/api/requests/{blood_request.id}/accept/')

    response = client.post(
        f'/api/requests/{blood_request.id}/donation-proof/',
        {'photo_url': 'https://cdn.example.com/slip.jpg'},
        format='json',
    )
    assert response.status_code == 200
    assert response.data['photo_url'] == 'https://cdn.example.com/slip.jpg'


def test_verify_by_stranger_is_forbidden(client_for, blood_request, make_donor, make_user):
    donor = make_donor()
    lifecycle.accept_request(blood_request.id, donor.id)
    lifecycle.submit_donation_proof(blood_request.id, donor.id, 'https://cdn.example.com/slip.jpg', '')

    response = client_for(make_user()).post(
        f'/api/requests/{blood_request.id}/donation-status/',
        {'donor_id': donor.id, 'status': 'confirmed'},
        format='json',
    )
    assert response.status_code == 403


def test_update_and_delete_are_owner_only(client_for, blood_request, make_user, requester):
    stranger = client_for(make_user())
    assert stranger.patch(f'/api/requests/{blood_request.id}/', {'units_needed': 1}, format='json').status_code == 403
    assert stranger.delete(f'/api/requests/{blood_request.id}/').status_code == 403

    owner = client_for(requester)
    response = owner.patch(
        f'/api/requests/{blood_request.id}/', {'hospital': {'phone': '01-4412303'}}, format='json'
    )
    assert response.status_code == 200, response.data
    assert response.data['hospital']['phone'] == '01-4412303'
    assert response.data['hospital']['name'] == 'Bir Hospital'

    assert owner.delete(f'/api/requests/{blood_request.id}/').status_code == 204
    assert not BloodRequest.objects.filter(id=blood_request.id).exists()


def test_cancel(client_for, blood_request, requester):
    response = client_for(requester).post(f'/api/requests/{blood_request.id}/cancel/')
    assert response.status_code == 200
    assert response.data['status'] == 'cancelled'

    response = client_for(requester).post(f'/api/requests/{blood_request.id}/cancel/')
    assert response.status_code == 409


def test_mine_history_dashboard(client_for, make_request, make_donor, requester):
    blood_request = make_request()
    donor = make_donor()
    lifecycle.accept_request(blood_request.id, donor.id)

    client = client_for(requester)

    mine = client.get('/api/requests/mine/')
    assert mine.status_code == 200
    assert mine.data[0]['accepted_donors_count'] == 1

    history = client.get('/api/requests/history/')
    assert history.status_code == 200
    assert history.data['stats']['total'] == 0

    dashboard = client.get('/api/requests/dashboard/')
    assert dashboard.status_code == 200
    assert dashboard.data['stats']['total_requests'] == 1
    assert dashboard.data['stats']['active_requests'] == 1


def test_nearby(client_for, make_request, make_user, requester):
    other = make_user()
    make_request(owner=other, latitude=27.70, longitude=85.31)

    response = client_for(requester).get('/api/requests/nearby/', {'lat': 27.7172, 'lng': 85.3240})

    assert response.status_code == 200
    assert response.data[0]['distance'] < 5

    response = client_for(requester).get('/api/requests/nearby/', {'lat': 27.7172})
    assert response.status_code == 400


def test_my_accepted_requests(client_for, blood_request, make_donor):
    donor = make_donor()
    lifecycle.accept_request(blood_request.id, donor.id)

    response = client_for(donor.user).get('/api/donors/me/accepted-requests/')

    assert response.status_code == 200
    [entry] = response.data
    assert entry['request_id'] == blood_request.id
    assert entry['status'] == 'accepted'
    assert entry['urgency_level'] == 'Normal'


def test_my_donor_profile_availability(client_for, make_donor):
    donor = make_donor()
    response = client_for(donor.user).patch('/api/donors/me/', {'is_available': False}, format='json')

    assert response.status_code == 200
    donor.refresh_from_db()
    assert donor.is_available is False


def test_notifications_inbox(client_for, blood_request, make_donor, django_capture_on_commit_callbacks):
    donor = make_donor()
    with django_capture_on_commit_callbacks(execute=True):
        lifecycle.accept_request(blood_request.id, donor.id)

    client = client_for(donor.user)
    response = client.get('/api/notifications/')
    assert response.status_code == 200
    [item] = response.data
    assert item['type'] == 'acceptance_confirmed'

    response = client.post(f"/api/notifications/{item['id']}/read/")
    assert response.status_code == 200
    assert response.data['is_read'] is True

    requester_client = client_for(blood_request.requested_by)
    response = requester_client.post('/api/notifications/read-all/')
    assert response.data['updated'] == 1
    assert not Notification.objects.filter(is_read=False).exists()


def test_cannot_read_someone_elses_notification(client_for, make_user):
    owner = make_user()
    notification = Notification.objects.create(recipient=owner, kind='request_cancelled', title='t', message='m')

    response = client_for(make_user()).post(f'/api/notifications/{notification.id}/read/')
    assert response.status_code == 404
