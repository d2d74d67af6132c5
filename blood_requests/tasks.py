# blood_requests/tasks.py
"""
Celery tasks for blood request side effects
"""
import logging

from celery import shared_task

from .exceptions import CollaboratorFailure
from .storage import delete_proof

logger = logging.getLogger(__name__)


@shared_task
def delete_donation_proof(photo_url):
    """
    Best-effort removal of a replaced donation proof image.
    Failures are logged; the lifecycle transition that scheduled this
    has already committed.
    """
    try:
        return delete_proof(photo_url)
    except CollaboratorFailure as exc:
        logger.warning(f"Error deleting donation proof image: {exc}")
        return False
