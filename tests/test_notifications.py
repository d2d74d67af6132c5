import smtplib

import pytest

from blood_requests import lifecycle
from notifications import services
from notifications.message_templates import TEMPLATES, render
from notifications.models import Notification
from notifications.tasks import deliver_notification, notify_matching_donors, retry_failed_notifications

pytestmark = pytest.mark.django_db


@pytest.fixture
def broken_inbox(monkeypatch):
    """Make the mail backend fail for one address and deliver the rest"""
    real_send_mail = services.send_mail

    def flaky_send_mail(subject, message, from_email, recipient_list, **kwargs):
        if 'broken@example.com' in recipient_list:
            raise smtplib.SMTPRecipientsRefused({'broken@example.com': (550, b'mailbox unavailable')})
        return real_send_mail(subject=subject, message=message, from_email=from_email,
                              recipient_list=recipient_list, **kwargs)

    monkeypatch.setattr(services, 'send_mail', flaky_send_mail)
    return real_send_mail


def test_notify_persists_and_sends_email(blood_request, mailoutbox):
    requester = blood_request.requested_by
    notification = services.notify(
        requester, 'request_created', blood_request=blood_request,
        params=services.request_params(blood_request),
    )

    notification.refresh_from_db()
    assert notification.delivery_status == Notification.DELIVERY_SENT
    assert notification.attempts == 1
    assert notification.sent_at is not None
    assert notification.title == 'Blood Request Created'
    assert not notification.is_read

    [email] = mailoutbox
    assert email.to == [requester.email]
    assert email.subject == 'Blood Request Created: A+'
    assert 'Sita Sharma' in email.body


def test_urgent_follows_request_emergency(make_request):
    emergency = make_request(urgency='emergency')
    notification = services.notify(emergency.requested_by, 'request_created', blood_request=emergency)
    assert notification.urgent is True


def test_email_override(blood_request, mailoutbox):
    services.notify(blood_request.requested_by, 'request_created', email='contact@example.com')
    assert mailoutbox[0].to == ['contact@example.com']


def test_unknown_kind_is_rejected(blood_request):
    with pytest.raises(ValueError):
        services.notify(blood_request.requested_by, 'no_such_kind')


def test_missing_email_is_skipped(make_user, mailoutbox):
    user = make_user(email='')
    notification = services.notify(user, 'request_cancelled')

    notification.refresh_from_db()
    assert notification.delivery_status == Notification.DELIVERY_SKIPPED
    assert mailoutbox == []


def test_transport_failure_is_recorded_and_isolated(
    make_user, make_request, make_donor, broken_inbox, mailoutbox, django_capture_on_commit_callbacks
):
    owner = make_user(email='broken@example.com')
    blood_request = make_request(owner=owner)
    donor = make_donor()

    with django_capture_on_commit_callbacks(execute=True):
        lifecycle.accept_request(blood_request.id, donor.id)

    failed = Notification.objects.get(kind='request_accepted')
    assert failed.delivery_status == Notification.DELIVERY_FAILED
    assert failed.attempts == 1
    assert 'broken@example.com' in failed.last_error

    sent = Notification.objects.get(kind='acceptance_confirmed')
    assert sent.delivery_status == Notification.DELIVERY_SENT
    assert [m.to for m in mailoutbox] == [[donor.user.email]]


def test_retry_failed_notifications(make_user, broken_inbox, monkeypatch, mailoutbox):
    user = make_user(email='broken@example.com')
    notification = services.notify(user, 'request_cancelled')
    notification.refresh_from_db()
    assert notification.delivery_status == Notification.DELIVERY_FAILED

    # Mail server recovers
    monkeypatch.setattr(services, 'send_mail', broken_inbox)

    assert retry_failed_notifications() == 1
    notification.refresh_from_db()
    assert notification.delivery_status == Notification.DELIVERY_SENT
    assert notification.attempts == 2
    assert notification.last_error == ''
    assert len(mailoutbox) == 1


def test_retry_gives_up_after_max_attempts(make_user, settings):
    settings.NOTIFICATION_MAX_ATTEMPTS = 3
    user = make_user()
    Notification.objects.create(
        recipient=user, kind='request_cancelled', title='t', message='m',
        delivery_status=Notification.DELIVERY_FAILED, attempts=3,
    )
    assert retry_failed_notifications() == 0


def test_deliver_twice_sends_once(make_user, mailoutbox):
    notification = services.notify(make_user(), 'request_cancelled')
    deliver_notification(notification.id)
    assert len(mailoutbox) == 1


def test_queued_delivery_runs_inline(make_user, mailoutbox):
    notification = Notification.objects.create(
        recipient=make_user(), kind='request_cancelled', title='t', message='m',
    )

    result = deliver_notification.delay(notification.id)

    assert result.get() is True
    notification.refresh_from_db()
    assert notification.delivery_status == Notification.DELIVERY_SENT
    assert len(mailoutbox) == 1


def test_deliver_missing_notification():
    assert deliver_notification(424242) is False


def test_matching_donor_fanout_isolates_failures(blood_request, make_donor, monkeypatch):
    donors = [make_donor() for _ in range(3)]
    real_notify = services.notify
    unlucky = donors[1].user

    def flaky_notify(recipient, kind, **kwargs):
        if recipient == unlucky:
            raise RuntimeError('push gateway down')
        return real_notify(recipient, kind, **kwargs)

    monkeypatch.setattr(services, 'notify', flaky_notify)

    assert notify_matching_donors(blood_request.id) == 2
    notified = {n.recipient for n in Notification.objects.filter(kind='new_request_nearby')}
    assert notified == {donors[0].user, donors[2].user}


def test_matching_donor_fanout_unknown_request():
    assert notify_matching_donors(424242) == 0


@pytest.mark.parametrize('kind', sorted(TEMPLATES))
def test_every_template_renders(kind, blood_request):
    params = services.request_params(
        blood_request, donor_name='Hari', feedback='Thanks', verification_link='http://x/verify'
    )
    for part in ('title', 'message', 'subject', 'body'):
        assert render(kind, part, params).strip()


def test_template_missing_params_render_blank():
    assert render('new_request_nearby', 'message', {}) == (
        'A new request for  blood type has been created in your area.'
    )
