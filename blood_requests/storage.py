"""
Donation proof images, kept in Django's default storage under MEDIA_ROOT.
"""
import logging
import os
from urllib.parse import urlparse

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils import timezone

from .exceptions import CollaboratorFailure, ValidationError

logger = logging.getLogger(__name__)

PROOF_DIR = 'donation-proof'


def validate_proof_file(upload):
    """Only jpg/jpeg/png images up to DONATION_PROOF_MAX_BYTES are accepted"""
    ext = os.path.splitext(upload.name)[1].lower()
    if ext not in settings.DONATION_PROOF_EXTENSIONS:
        raise ValidationError({'donation_proof': ['Only image files are allowed!']})
    if upload.size > settings.DONATION_PROOF_MAX_BYTES:
        raise ValidationError({'donation_proof': ['File too large.']})
    return ext


def save_proof(upload, user_id):
    """
    Store an uploaded proof image as ``donation-proof/<ms timestamp>-<user id><ext>``
    and return the storage path actually used.
    """
    ext = validate_proof_file(upload)
    stamp = int(timezone.now().timestamp() * 1000)
    path = default_storage.save(f'{PROOF_DIR}/{stamp}-{user_id}{ext}', upload)
    logger.info(f"Stored donation proof {path} for user {user_id}")
    return path


def proof_path_from_url(photo_url):
    """
    Map a proof URL (absolute or relative) back to its storage path.
    Returns None for URLs that are not served from MEDIA_URL.
    """
    if not photo_url:
        return None
    url_path = urlparse(photo_url).path
    media_url = urlparse(settings.MEDIA_URL).path
    if not url_path.startswith(media_url):
        return None
    return url_path[len(media_url):]


def delete_proof(photo_url):
    """
    Remove a stored proof image. A missing file is not an error; a storage
    failure is raised as CollaboratorFailure.
    """
    path = proof_path_from_url(photo_url)
    if path is None:
        logger.info(f"Proof {photo_url} is not in local storage, nothing to delete")
        return False

    try:
        if not default_storage.exists(path):
            logger.info(f"File not found, nothing to delete: {path}")
            return False
        default_storage.delete(path)
    except OSError as exc:
        raise CollaboratorFailure(f"Could not delete donation proof {path}: {exc}") from exc

    logger.info(f"Deleted donation proof image {path}")
    return True
