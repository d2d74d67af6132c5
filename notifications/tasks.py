# notifications/tasks.py
"""
Celery tasks for notification delivery and donor fan-out
"""
import logging

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from blood_requests.exceptions import CollaboratorFailure

from .message_templates import render
from .models import Notification

logger = logging.getLogger(__name__)


@shared_task
def deliver_notification(notification_id):
    """
    Send the email for one notification and record the outcome.
    Transport failures are stored on the row, never raised.
    """
    from . import services

    try:
        notification = Notification.objects.select_related('recipient').get(id=notification_id)
    except Notification.DoesNotExist:
        logger.warning(f"Notification {notification_id} not found")
        return False

    if notification.delivery_status == Notification.DELIVERY_SENT:
        return True

    address = notification.email_address
    if not address:
        logger.info(f"No email address for notification {notification_id}, skipping email")
        notification.delivery_status = Notification.DELIVERY_SKIPPED
        notification.save(update_fields=['delivery_status'])
        return False

    notification.attempts += 1
    try:
        services.send_email(
            address,
            render(notification.kind, 'subject', notification.params),
            render(notification.kind, 'body', notification.params),
        )
    except CollaboratorFailure as exc:
        logger.warning(f"❌ Email failed for notification {notification_id}: {exc}")
        notification.delivery_status = Notification.DELIVERY_FAILED
        notification.last_error = str(exc)
        notification.save(update_fields=['attempts', 'delivery_status', 'last_error'])
        return False

    notification.delivery_status = Notification.DELIVERY_SENT
    notification.sent_at = timezone.now()
    notification.last_error = ''
    notification.save(update_fields=['attempts', 'delivery_status', 'last_error', 'sent_at'])
    logger.info(f"📧 Email sent for notification {notification_id} to {address}")
    return True


@shared_task
def notify_matching_donors(blood_request_id):
    """
    Tell every compatible, available donor in the hospital's area about a
    new request. Each donor is handled on its own so one failure does not
    stop the rest.
    """
    from blood_requests.models import BloodRequest
    from donors.utils import find_matching_donors

    from . import services

    try:
        blood_request = BloodRequest.objects.select_related('requested_by').get(id=blood_request_id)
    except BloodRequest.DoesNotExist:
        logger.warning(f"Blood request {blood_request_id} not found")
        return 0

    donors = find_matching_donors(blood_request)
    logger.info(
        f"Found {len(donors)} matching donors in "
        f"{blood_request.hospital_city}, {blood_request.hospital_state}"
    )

    params = services.request_params(blood_request)
    notified = 0
    for donor in donors:
        try:
            services.notify(
                donor.user,
                'new_request_nearby',
                blood_request=blood_request,
                params=params,
            )
            notified += 1
        except Exception:
            logger.exception(f"Failed to notify donor {donor.id} about request {blood_request_id}")

    return notified


@shared_task
def retry_failed_notifications():
    """Re-queue failed deliveries that still have attempts left"""
    pending = Notification.objects.filter(
        delivery_status=Notification.DELIVERY_FAILED,
        attempts__lt=settings.NOTIFICATION_MAX_ATTEMPTS,
    )

    retried = 0
    for notification in pending:
        notification.delivery_status = Notification.DELIVERY_QUEUED
        notification.save(update_fields=['delivery_status'])
        deliver_notification.delay(notification.id)
        retried += 1

    if retried:
        logger.info(f"Re-queued {retried} failed notifications")
    return retried
