# blood_requests/lifecycle.py
"""
Blood request lifecycle.

Every state change runs in one transaction with the BloodRequest row locked
(``select_for_update``) before any guard is checked, so concurrent accepts
cannot overfill the donor cap and only one confirmed donation can win.
Notifications and proof-file deletion are queued to run after commit.
"""
import logging
from collections import Counter

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from algorithms.haversine import sort_by_distance
from donors.models import DonorProfile
from notifications.services import notify_after_commit, request_params

from .exceptions import (
    CapacityExceeded,
    DuplicateResponse,
    InvalidTransition,
    NotFound,
    NotRequestOwner,
    RateLimited,
    ValidationError,
)
from .models import BloodRequest, DonorResponse
from .tasks import delete_donation_proof

logger = logging.getLogger(__name__)

OUTCOME_CONFIRMED = 'confirmed'
OUTCOME_REJECTED = 'rejected'
OUTCOME_REUPLOAD = 'reupload'
OUTCOMES = (OUTCOME_CONFIRMED, OUTCOME_REJECTED, OUTCOME_REUPLOAD)

ALREADY_RECEIVED_FEEDBACK = (
    'Blood has already been received from another donor. '
    'Thank you for your willingness to help.'
)

URGENCY_LEVELS = {
    'emergency': 'Critical',
    'urgent': 'High',
    'normal': 'Normal',
}

EDITABLE_FIELDS = (
    'patient_name', 'blood_type', 'units_needed', 'urgency', 'reason', 'required_by',
    'hospital_name', 'hospital_address', 'hospital_city', 'hospital_state',
    'hospital_zip_code', 'hospital_phone',
    'contact_name', 'contact_phone', 'contact_email', 'contact_relationship',
    'longitude', 'latitude',
)


# ---------------------------
# Helpers
# ---------------------------
def _lock_request(request_id):
    try:
        return BloodRequest.objects.select_for_update().get(pk=request_id)
    except BloodRequest.DoesNotExist:
        raise NotFound('Blood request not found')


def _get_donor(donor_id):
    try:
        return DonorProfile.objects.select_related('user').get(pk=donor_id)
    except DonorProfile.DoesNotExist:
        raise NotFound('Donor profile not found')


def _get_response(blood_request, donor):
    try:
        return blood_request.responses.get(donor=donor)
    except DonorResponse.DoesNotExist:
        raise NotFound('Donor not found in this request')


def _check_owner(blood_request, user):
    if blood_request.requested_by_id != user.id and not getattr(user, 'is_admin', False):
        logger.warning(f"User {user.id} is not allowed to change blood request {blood_request.id}")
        raise NotRequestOwner()


def _full_clean(instance, exclude=None):
    try:
        instance.full_clean(exclude=exclude)
    except DjangoValidationError as exc:
        raise ValidationError(exc.message_dict)


def _save_status(blood_request):
    blood_request.recompute_status()
    blood_request.save(update_fields=['status', 'updated_at'])


def _delete_proof_after_commit(photo_url):
    if photo_url:
        transaction.on_commit(lambda: delete_donation_proof.delay(photo_url), robust=True)


def verification_link(request_id, donor_id):
    return f"{settings.FRONTEND_URL}/dashboard/requester/verify-donation/{request_id}/{donor_id}"


# =====================================================
# Requester operations
# =====================================================
def create_request(requester_id, data):
    """
    Create a blood request for ``requester_id``. A requester may create at
    most DAILY_REQUEST_LIMIT requests per local calendar day.
    """
    User = get_user_model()
    limit = settings.DAILY_REQUEST_LIMIT

    with transaction.atomic():
        # Lock the requester so concurrent creates are counted one at a time
        try:
            requester = User.objects.select_for_update().get(pk=requester_id)
        except User.DoesNotExist:
            raise NotFound('User not found')

        start_of_day = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
        created_today = BloodRequest.objects.for_requester(requester.id).created_since(start_of_day).count()
        if created_today >= limit:
            logger.warning(f"User {requester.id} reached the daily limit of {limit} blood requests")
            raise RateLimited(limit)

        blood_request = BloodRequest(requested_by=requester, **data)
        blood_request.status = BloodRequest.STATUS_PENDING
        _full_clean(blood_request)
        blood_request.save()

        notify_after_commit(
            requester,
            'request_created',
            blood_request=blood_request,
            params=request_params(blood_request),
            email=blood_request.contact_email,
        )

    logger.info(f"Blood request {blood_request.id} created by user {requester.id}")
    return blood_request


def update_request(request_id, user, changes):
    """Edit the descriptive fields of an open request (owner or admin)"""
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError({field: ['This field cannot be changed.'] for field in unknown})

    with transaction.atomic():
        blood_request = _lock_request(request_id)
        _check_owner(blood_request, user)
        if blood_request.is_closed:
            raise InvalidTransition(
                f'Cannot update a request that is {blood_request.status}',
                current_status=blood_request.status,
            )

        for field, value in changes.items():
            setattr(blood_request, field, value)
        _full_clean(blood_request)
        # A lower units_needed can complete a partially fulfilled request
        blood_request.recompute_status()
        blood_request.save()

    logger.info(f"Blood request {request_id} updated by user {user.id}")
    return blood_request


def cancel_request(request_id, user):
    """Cancel an open request and tell the donors holding a slot"""
    with transaction.atomic():
        blood_request = _lock_request(request_id)
        _check_owner(blood_request, user)
        if blood_request.is_closed:
            raise InvalidTransition(
                f'Cannot cancel a request that is {blood_request.status}',
                current_status=blood_request.status,
            )

        blood_request.status = BloodRequest.STATUS_CANCELLED
        blood_request.save(update_fields=['status', 'updated_at'])

        active = (
            blood_request.responses
            .filter(status__in=[DonorResponse.STATUS_ACCEPTED, DonorResponse.STATUS_PENDING_CONFIRMATION])
            .select_related('donor__user')
        )
        params = request_params(blood_request)
        for response in active:
            notify_after_commit(
                response.donor.user,
                'request_cancelled',
                blood_request=blood_request,
                params=params,
            )

    logger.info(f"Blood request {request_id} cancelled by user {user.id}")
    return blood_request


def delete_request(request_id, user):
    """Hard delete (owner or admin). Stored proof images are removed after commit."""
    with transaction.atomic():
        blood_request = _lock_request(request_id)
        _check_owner(blood_request, user)

        photos = list(
            blood_request.responses
            .exclude(donation_proof_photo__isnull=True)
            .exclude(donation_proof_photo='')
            .values_list('donation_proof_photo', flat=True)
        )
        blood_request.delete()
        for photo_url in photos:
            _delete_proof_after_commit(photo_url)

    logger.info(f"Blood request {request_id} deleted by user {user.id}")


# =====================================================
# Donor operations
# =====================================================
def accept_request(request_id, donor_id, accepted_at=None):
    """
    Add the donor to the request as ``accepted``.

    Raises DuplicateResponse if the donor already responded and
    CapacityExceeded once MAX_ACTIVE_DONORS donors hold a slot.
    """
    donor = _get_donor(donor_id)
    limit = settings.MAX_ACTIVE_DONORS

    with transaction.atomic():
        blood_request = _lock_request(request_id)

        if blood_request.is_closed:
            raise InvalidTransition(
                f'This request is {blood_request.status} and no longer accepts donors',
                current_status=blood_request.status,
            )

        if blood_request.responses.filter(donor=donor).exists():
            logger.info(f"Donor {donor.id} already responded to blood request {request_id}")
            raise DuplicateResponse()

        if blood_request.responses.holding_slot().count() >= limit:
            logger.info(f"Blood request {request_id} already has {limit} active donors")
            raise CapacityExceeded(limit)

        moment = accepted_at or timezone.now()
        try:
            with transaction.atomic():
                DonorResponse.objects.create(
                    blood_request=blood_request,
                    donor=donor,
                    status=DonorResponse.STATUS_ACCEPTED,
                    response_date=moment,
                    accepted_date=moment,
                )
        except IntegrityError:
            raise DuplicateResponse()

        _save_status(blood_request)

        params = request_params(blood_request, donor_name=donor.user.display_name)
        notify_after_commit(
            blood_request.requested_by,
            'request_accepted',
            blood_request=blood_request,
            params=params,
            email=blood_request.contact_email,
        )
        notify_after_commit(
            donor.user,
            'acceptance_confirmed',
            blood_request=blood_request,
            params=params,
        )

    logger.info(f"Donor {donor.id} accepted blood request {request_id}")
    return blood_request


def decline_request(request_id, donor_id):
    """
    Decline a request. A donor who has not responded yet records a
    ``declined`` response; an ``accepted`` donor withdraws and frees the slot.
    """
    donor = _get_donor(donor_id)

    with transaction.atomic():
        blood_request = _lock_request(request_id)
        response = blood_request.responses.filter(donor=donor).first()

        if response is None:
            if blood_request.is_closed:
                raise InvalidTransition(
                    f'This request is {blood_request.status}',
                    current_status=blood_request.status,
                )
            try:
                with transaction.atomic():
                    DonorResponse.objects.create(
                        blood_request=blood_request,
                        donor=donor,
                        status=DonorResponse.STATUS_DECLINED,
                    )
            except IntegrityError:
                raise DuplicateResponse()
            logger.info(f"Donor {donor.id} declined blood request {request_id}")

        elif response.status == DonorResponse.STATUS_ACCEPTED:
            response.status = DonorResponse.STATUS_DECLINED
            response.save(update_fields=['status', 'updated_at'])
            _save_status(blood_request)

            notify_after_commit(
                blood_request.requested_by,
                'donor_withdrew',
                blood_request=blood_request,
                params=request_params(blood_request, donor_name=donor.user.display_name),
                email=blood_request.contact_email,
            )
            logger.info(f"Donor {donor.id} withdrew from blood request {request_id}")

        elif response.status == DonorResponse.STATUS_DECLINED:
            raise DuplicateResponse()

        else:
            raise InvalidTransition(
                f'Cannot decline after the donation is {response.status}',
                current_status=response.status,
            )

    return blood_request


def submit_donation_proof(request_id, donor_id, photo_url, notes=''):
    """
    Record the donor's proof of donation and ask the requester to verify it.
    Returns ``{'status', 'donation_date', 'photo_url'}``.
    """
    if not photo_url:
        raise ValidationError({'donation_proof': ['A donation proof photo is required.']})

    donor = _get_donor(donor_id)

    with transaction.atomic():
        blood_request = _lock_request(request_id)
        response = _get_response(blood_request, donor)

        if response.status in (DonorResponse.STATUS_DONATED, DonorResponse.STATUS_REJECTED):
            raise InvalidTransition(
                f'This donation has already been {response.status}',
                current_status=response.status,
            )
        if response.status not in (DonorResponse.STATUS_ACCEPTED, DonorResponse.STATUS_PENDING_CONFIRMATION):
            raise InvalidTransition(
                'Only donors who accepted this request can submit a donation',
                current_status=response.status,
            )
        if blood_request.status == BloodRequest.STATUS_CANCELLED:
            raise InvalidTransition('This request has been cancelled', current_status=blood_request.status)

        previous_photo = response.donation_proof_photo

        response.donation_proof_photo = photo_url
        response.notes = notes or ''
        response.donation_date = timezone.now()
        response.needs_reupload = False
        response.status = DonorResponse.STATUS_PENDING_CONFIRMATION
        response.save()

        if previous_photo and previous_photo != photo_url:
            _delete_proof_after_commit(previous_photo)

        notify_after_commit(
            blood_request.requested_by,
            'donation_submitted',
            blood_request=blood_request,
            params=request_params(
                blood_request,
                donor_name=donor.user.display_name,
                donation_date=timezone.localtime(response.donation_date).strftime('%Y-%m-%d %H:%M'),
                notes=response.notes or 'None',
                verification_link=verification_link(blood_request.id, donor.id),
            ),
            email=blood_request.contact_email,
        )

    logger.info(f"Donor {donor.id} submitted donation proof for blood request {request_id}")
    return {
        'status': response.status,
        'donation_date': response.donation_date,
        'photo_url': response.donation_proof_photo,
    }


# =====================================================
# Verification
# =====================================================
def update_donation_status(request_id, requester_id, donor_id, outcome, feedback=None):
    """
    The requester's verdict on a submitted donation: ``confirmed``,
    ``rejected`` or ``reupload``.

    The first confirmed donation fulfils the request regardless of
    units_needed; every other unresolved donor is rejected and told the
    blood is no longer needed.
    """
    if outcome not in OUTCOMES:
        raise ValidationError({'status': [f'Must be one of: {", ".join(OUTCOMES)}.']})

    donor = _get_donor(donor_id)
    feedback = feedback or ''

    with transaction.atomic():
        blood_request = _lock_request(request_id)

        if blood_request.requested_by_id != requester_id:
            logger.warning(f"User {requester_id} tried to verify a donation on blood request {request_id}")
            raise NotRequestOwner()

        if blood_request.is_closed:
            raise InvalidTransition(
                f'This request is already {blood_request.status}',
                current_status=blood_request.status,
            )

        response = _get_response(blood_request, donor)
        if response.status != DonorResponse.STATUS_PENDING_CONFIRMATION:
            raise InvalidTransition(
                'This donation is not awaiting confirmation',
                current_status=response.status,
            )

        response.requester_feedback = feedback
        params = request_params(blood_request, feedback=feedback or 'None')

        if outcome == OUTCOME_CONFIRMED:
            response.status = DonorResponse.STATUS_DONATED
            response.save()

            blood_request.status = BloodRequest.STATUS_FULFILLED
            blood_request.save(update_fields=['status', 'updated_at'])

            DonorProfile.objects.filter(pk=donor.pk).update(
                donation_count=F('donation_count') + 1,
                last_donation_date=timezone.localdate(),
            )

            others = (
                blood_request.responses
                .unresolved()
                .exclude(pk=response.pk)
                .select_related('donor__user')
            )
            for other in others:
                other.status = DonorResponse.STATUS_REJECTED
                other.requester_feedback = ALREADY_RECEIVED_FEEDBACK
                other.save(update_fields=['status', 'requester_feedback', 'updated_at'])
                notify_after_commit(
                    other.donor.user,
                    'donation_not_needed',
                    blood_request=blood_request,
                    params=params,
                )

        elif outcome == OUTCOME_REJECTED:
            response.status = DonorResponse.STATUS_REJECTED
            response.save()

        else:
            old_photo = response.donation_proof_photo
            response.status = DonorResponse.STATUS_ACCEPTED
            response.donation_proof_photo = None
            response.needs_reupload = True
            response.save()
            _delete_proof_after_commit(old_photo)

        notify_after_commit(
            donor.user,
            f'donation_{outcome}',
            blood_request=blood_request,
            params=params,
        )

    logger.info(f"Donation of donor {donor.id} on blood request {request_id} marked {outcome}")
    return {'status': response.status}


# =====================================================
# Read models
# =====================================================
def get_accepted_requests(donor_id):
    """The donor's accepted requests, newest first, flattened for display"""
    donor = _get_donor(donor_id)
    responses = (
        donor.responses
        .exclude(status__in=[DonorResponse.STATUS_PENDING, DonorResponse.STATUS_DECLINED])
        .select_related('blood_request__requested_by')
        .order_by('-response_date', '-id')
    )

    accepted = []
    for response in responses:
        blood_request = response.blood_request
        requester = blood_request.requested_by
        accepted.append({
            'request_id': blood_request.id,
            'blood_type': blood_request.blood_type,
            'patient_name': blood_request.patient_name,
            'requester': {
                'id': requester.id,
                'name': requester.display_name,
                'email': requester.email,
            },
            'contact_phone': blood_request.contact_phone or requester.phone,
            'location': f"{blood_request.hospital_city}, {blood_request.hospital_state}",
            'address': blood_request.hospital_address,
            'status': response.status,
            'request_status': blood_request.status,
            'hospital_name': blood_request.hospital_name,
            'urgency_level': URGENCY_LEVELS.get(blood_request.urgency, 'Normal'),
            'units_needed': blood_request.units_needed,
            'created_at': blood_request.created_at,
            'accepted_date': response.accepted_date,
            'donation_date': response.donation_date,
            'notes': response.notes,
            'requester_feedback': response.requester_feedback,
            'needs_reupload': response.needs_reupload,
            'donation_proof_photo': response.donation_proof_photo,
        })
    return accepted


def get_my_requests(requester_id):
    return (
        BloodRequest.objects
        .for_requester(requester_id)
        .with_active_donor_count()
        .select_related('requested_by')
        .order_by('-created_at')
    )


def _donor_stats(blood_request):
    counts = Counter(response.status for response in blood_request.responses.all())
    return {
        'total': sum(counts.values()),
        'donated': counts[DonorResponse.STATUS_DONATED],
        'accepted': counts[DonorResponse.STATUS_ACCEPTED],
        'pending_confirmation': counts[DonorResponse.STATUS_PENDING_CONFIRMATION],
        'pending': counts[DonorResponse.STATUS_PENDING],
        'declined': counts[DonorResponse.STATUS_DECLINED],
        'rejected': counts[DonorResponse.STATUS_REJECTED],
    }


def get_my_request_history(requester_id):
    """Requests that left the pending state, with donor statistics"""
    requests = (
        BloodRequest.objects
        .for_requester(requester_id)
        .exclude(status=BloodRequest.STATUS_PENDING)
        .prefetch_related('responses')
        .order_by('-created_at')
    )

    history = []
    for blood_request in requests:
        donor_stats = _donor_stats(blood_request)
        donation_dates = [
            response.donation_date for response in blood_request.responses.all()
            if response.status == DonorResponse.STATUS_DONATED and response.donation_date
        ]
        completion_date = None
        if blood_request.status == BloodRequest.STATUS_FULFILLED and donation_dates:
            completion_date = max(donation_dates)
        history.append({
            'request': blood_request,
            'donor_stats': donor_stats,
            'completion_date': completion_date,
        })

    stats = {
        'total': len(history),
        'fulfilled': sum(1 for item in history if item['request'].status == BloodRequest.STATUS_FULFILLED),
        'partially_fulfilled': sum(
            1 for item in history if item['request'].status == BloodRequest.STATUS_PARTIALLY_FULFILLED
        ),
        'cancelled': sum(1 for item in history if item['request'].status == BloodRequest.STATUS_CANCELLED),
        'total_donors': sum(item['donor_stats']['total'] for item in history),
        'total_donated': sum(item['donor_stats']['donated'] for item in history),
        'donated_requests': sum(1 for item in history if item['donor_stats']['donated'] > 0),
    }
    return {'requests': history, 'stats': stats}


def get_requester_dashboard(requester_id):
    requests = list(
        BloodRequest.objects
        .for_requester(requester_id)
        .prefetch_related('responses')
        .order_by('-created_at')
    )

    status_counts = Counter(blood_request.status for blood_request in requests)
    donor_ids = {
        response.donor_id
        for blood_request in requests
        for response in blood_request.responses.all()
    }

    units_by_type = {}
    for blood_request in requests:
        units_by_type[blood_request.blood_type] = (
            units_by_type.get(blood_request.blood_type, 0) + blood_request.units_needed
        )

    total = len(requests)
    status_distribution = {}
    if total:
        status_distribution = {
            status: round(status_counts[status] * 100 / total)
            for status, _label in BloodRequest.STATUS_CHOICES
        }

    return {
        'stats': {
            'total_requests': total,
            'active_requests': status_counts[BloodRequest.STATUS_PENDING],
            'completed_requests': (
                status_counts[BloodRequest.STATUS_FULFILLED]
                + status_counts[BloodRequest.STATUS_PARTIALLY_FULFILLED]
            ),
            'total_donors': len(donor_ids),
        },
        'recent_requests': [
            {
                'id': blood_request.id,
                'patient_name': blood_request.patient_name,
                'blood_type': blood_request.blood_type,
                'units_needed': blood_request.units_needed,
                'hospital_name': blood_request.hospital_name,
                'status': blood_request.status,
                'urgency': blood_request.urgency,
                'created_at': blood_request.created_at,
                'donors': len(blood_request.responses.all()),
            }
            for blood_request in requests[:5]
        ],
        'blood_type_requirements': [
            {'type': blood_type, 'units': units} for blood_type, units in units_by_type.items()
        ],
        'status_distribution': status_distribution,
    }


def find_nearby_requests(user, lat=None, lng=None, blood_type=None, urgency=None, on_date=None):
    """
    Other users' requests, optionally filtered. With coordinates each request
    gets a ``distance`` in km and the list is ordered nearest first.
    """
    requests = (
        BloodRequest.objects
        .exclude(requested_by=user)
        .select_related('requested_by')
        .with_active_donor_count()
    )
    if blood_type:
        requests = requests.filter(blood_type=blood_type)
    if urgency:
        requests = requests.filter(urgency=urgency)
    if on_date:
        requests = requests.filter(created_at__date=on_date)

    requests = list(requests)
    if lat is not None and lng is not None:
        return sort_by_distance(lat, lng, requests)
    return requests
