import logging

from donors.models import DonorProfile
from algorithms.blood_compatibility import get_compatible_donors
from algorithms.haversine import sort_by_distance

# Logger setup
logger = logging.getLogger(__name__)


def find_matching_donors(blood_request):
    """
    Donors who should hear about a new blood request.
    Criteria:
    - Donor blood type can give to the requested type
    - Donor lives in the hospital's city and state
    - Donor is available and has an active account
    - Donor hasn't donated in the last 90 days
    - Donor is not the requester
    """
    compatible_types = get_compatible_donors(blood_request.blood_type)
    if not compatible_types:
        logger.warning(f"No compatible donor types for blood type {blood_request.blood_type}")
        return []

    donors = (
        DonorProfile.objects
        .available()
        .past_cooldown()
        .filter(
            blood_type__in=compatible_types,
            city__iexact=blood_request.hospital_city,
            state__iexact=blood_request.hospital_state,
        )
        .exclude(user_id=blood_request.requested_by_id)
        .select_related('user')
    )

    donors = list(donors)
    if blood_request.latitude is not None and blood_request.longitude is not None:
        # Nearest donors first when the request carries a location
        donors = sort_by_distance(blood_request.latitude, blood_request.longitude, donors)

    logger.info(f"Matched {len(donors)} donors for blood request {blood_request.id}")
    return donors
