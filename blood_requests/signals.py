# blood_requests/signals.py
"""
Signals to notify matching donors when a blood request is created
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from blood_requests.models import BloodRequest
from notifications.tasks import notify_matching_donors

logger = logging.getLogger(__name__)


@receiver(post_save, sender=BloodRequest)
def auto_notify_matching_donors(sender, instance, created, **kwargs):
    """
    Queue the "new request in your area" fan-out once the new request is committed
    """
    if created and instance.status == BloodRequest.STATUS_PENDING:
        request_id = instance.id
        transaction.on_commit(lambda: notify_matching_donors.delay(request_id), robust=True)
        logger.info(f"🔔 Donor notification queued for BloodRequest #{request_id}")
