# notifications/services.py
"""
Notification dispatch.

The lifecycle engine never talks to email directly: it calls
``notify_after_commit`` and the job is persisted and queued only once the
transition's transaction has committed.
"""
import logging
from functools import partial

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

from blood_requests.exceptions import CollaboratorFailure

from .message_templates import TEMPLATES, render
from .models import Notification
from .tasks import deliver_notification

logger = logging.getLogger(__name__)


def request_params(blood_request, **extra):
    """Template parameters describing a blood request (JSON-safe)"""
    required_by = blood_request.required_by
    location = ', '.join(
        part for part in (
            blood_request.hospital_address,
            blood_request.hospital_city,
            blood_request.hospital_state,
        ) if part
    )
    params = {
        'request_id': blood_request.id,
        'patient_name': blood_request.patient_name,
        'blood_type': blood_request.blood_type,
        'units_needed': blood_request.units_needed,
        'hospital_name': blood_request.hospital_name or 'Not specified',
        'hospital_city': blood_request.hospital_city,
        'location': location,
        'urgency': blood_request.get_urgency_display(),
        'required_by': required_by.date().isoformat() if required_by else 'Not specified',
        'requester_name': blood_request.requested_by.display_name,
    }
    params.update(extra)
    return params


def notify(recipient, kind, blood_request=None, params=None, email='', urgent=None):
    """
    Persist one notification for ``recipient`` and queue its email delivery.

    ``urgent`` defaults to whether the related request is an emergency.
    """
    if kind not in TEMPLATES:
        raise ValueError(f"Unknown notification kind: {kind}")

    if urgent is None:
        urgent = bool(blood_request and blood_request.is_emergency)

    params = dict(params or {})
    params.setdefault('recipient_name', recipient.display_name)

    notification = Notification.objects.create(
        recipient=recipient,
        blood_request=blood_request,
        kind=kind,
        title=render(kind, 'title', params),
        message=render(kind, 'message', params),
        params=params,
        email=email or '',
        urgent=urgent,
    )

    try:
        deliver_notification.delay(notification.id)
    except Exception as exc:
        # Broker unavailable: keep the job so retry_failed_notifications picks it up
        logger.exception(f"Could not queue notification {notification.id}")
        notification.delivery_status = Notification.DELIVERY_FAILED
        notification.last_error = str(exc)
        notification.save(update_fields=['delivery_status', 'last_error'])

    logger.info(f"Notification {notification.id} ({kind}) queued for user {recipient.id}")
    return notification


def notify_after_commit(recipient, kind, **kwargs):
    """
    Schedule ``notify`` to run once the current transaction commits.
    A failing callback is logged by Django and does not affect the others.
    """
    transaction.on_commit(partial(notify, recipient, kind, **kwargs), robust=True)


def send_email(address, subject, body):
    """Email transport. Raises CollaboratorFailure when the backend fails."""
    try:
        send_mail(
            subject=subject,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[address],
            fail_silently=False,
        )
    except OSError as exc:
        raise CollaboratorFailure(f"Email to {address} failed: {exc}") from exc
