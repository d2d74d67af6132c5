# blood_requests/models.py
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from algorithms.blood_compatibility import BLOOD_TYPES


class BloodRequestQuerySet(models.QuerySet):
    def for_requester(self, user_id):
        return self.filter(requested_by_id=user_id)

    def created_since(self, moment):
        return self.filter(created_at__gte=moment)

    def with_active_donor_count(self):
        """Annotate ``accepted_donors_count``: donors currently holding a slot"""
        return self.annotate(
            accepted_donors_count=models.Count(
                'responses',
                filter=models.Q(responses__status__in=DonorResponse.SLOT_STATUSES),
            )
        )


class BloodRequest(models.Model):
    URGENCY_CHOICES = [
        ('normal', 'Normal'),
        ('urgent', 'Urgent'),
        ('emergency', 'Emergency'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_PARTIALLY_FULFILLED = 'partially_fulfilled'
    STATUS_FULFILLED = 'fulfilled'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PARTIALLY_FULFILLED, 'Partially Fulfilled'),
        (STATUS_FULFILLED, 'Fulfilled'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # Statuses no longer open to donors
    CLOSED_STATUSES = (STATUS_FULFILLED, STATUS_CANCELLED)

    BLOOD_TYPE_CHOICES = [(bt, bt) for bt in BLOOD_TYPES]

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='blood_requests'
    )

    patient_name = models.CharField(max_length=200)
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    units_needed = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='normal')
    reason = models.TextField()
    required_by = models.DateTimeField()

    # Hospital
    hospital_name = models.CharField(max_length=200, blank=True)
    hospital_address = models.CharField(max_length=255, blank=True)
    hospital_city = models.CharField(max_length=100, blank=True)
    hospital_state = models.CharField(max_length=100, blank=True)
    hospital_zip_code = models.CharField(max_length=20, blank=True)
    hospital_phone = models.CharField(max_length=20, blank=True)

    # Point location, exposed as [longitude, latitude]
    longitude = models.FloatField(null=True, blank=True)
    latitude = models.FloatField(null=True, blank=True)

    # Contact person
    contact_name = models.CharField(max_length=200, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_relationship = models.CharField(max_length=100, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BloodRequestQuerySet.as_manager()

    def __str__(self):
        return f"{self.patient_name} - {self.blood_type} ({self.urgency})"

    @property
    def is_emergency(self):
        return self.urgency == 'emergency'

    @property
    def is_closed(self):
        return self.status in self.CLOSED_STATUSES

    @property
    def location(self):
        if self.longitude is None or self.latitude is None:
            return None
        return [self.longitude, self.latitude]

    def active_donor_count(self):
        return self.responses.filter(status__in=DonorResponse.SLOT_STATUSES).count()

    def recompute_status(self):
        """
        Derive the aggregate status from the donated count. A request that is
        cancelled, or already fulfilled by a confirmed donation, keeps its status.
        """
        if self.status in self.CLOSED_STATUSES:
            return self.status

        donated = self.responses.filter(status=DonorResponse.STATUS_DONATED).count()
        if donated >= self.units_needed:
            self.status = self.STATUS_FULFILLED
        elif donated > 0:
            self.status = self.STATUS_PARTIALLY_FULFILLED
        else:
            self.status = self.STATUS_PENDING
        return self.status

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Blood Request'
        verbose_name_plural = 'Blood Requests'
        indexes = [
            models.Index(fields=['requested_by', 'created_at'], name='request_owner_created_idx'),
            models.Index(fields=['hospital_state', 'hospital_city'], name='request_area_idx'),
        ]


class DonorResponseQuerySet(models.QuerySet):
    def holding_slot(self):
        return self.filter(status__in=DonorResponse.SLOT_STATUSES)

    def unresolved(self):
        return self.exclude(status__in=DonorResponse.RESOLVED_STATUSES)


class DonorResponse(models.Model):
    """
    One donor's engagement with one blood request. The donor's list of
    accepted requests is read straight from these rows.
    """
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_PENDING_CONFIRMATION = 'pending_confirmation'
    STATUS_DONATED = 'donated'
    STATUS_REJECTED = 'rejected'
    STATUS_DECLINED = 'declined'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_PENDING_CONFIRMATION, 'Pending Confirmation'),
        (STATUS_DONATED, 'Donated'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_DECLINED, 'Declined'),
    ]

    # Count toward the per-request donor cap
    SLOT_STATUSES = (STATUS_ACCEPTED, STATUS_DONATED, STATUS_PENDING_CONFIRMATION)
    # Untouched when another donor's donation is confirmed
    RESOLVED_STATUSES = (STATUS_DONATED, STATUS_REJECTED, STATUS_DECLINED)

    blood_request = models.ForeignKey(
        BloodRequest,
        on_delete=models.CASCADE,
        related_name='responses'
    )
    donor = models.ForeignKey(
        'donors.DonorProfile',
        on_delete=models.CASCADE,
        related_name='responses'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    response_date = models.DateTimeField(default=timezone.now)
    accepted_date = models.DateTimeField(null=True, blank=True)
    donation_date = models.DateTimeField(null=True, blank=True)
    donation_proof_photo = models.URLField(max_length=500, null=True, blank=True)
    notes = models.TextField(blank=True)
    requester_feedback = models.TextField(blank=True)
    needs_reupload = models.BooleanField(default=False)

    updated_at = models.DateTimeField(auto_now=True)

    objects = DonorResponseQuerySet.as_manager()

    def __str__(self):
        return f"{self.donor} -> request #{self.blood_request_id} ({self.status})"

    class Meta:
        ordering = ['response_date', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['blood_request', 'donor'],
                name='unique_donor_per_request',
            ),
        ]
        indexes = [
            models.Index(fields=['blood_request', 'status'], name='response_request_status_idx'),
        ]
