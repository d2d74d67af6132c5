from datetime import date, timedelta

from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator

from algorithms.blood_compatibility import BLOOD_TYPES

DONATION_COOLDOWN_DAYS = 90


class DonorProfileQuerySet(models.QuerySet):
    def available(self):
        return self.filter(is_available=True, user__is_active=True)

    def past_cooldown(self, today=None):
        """Donors who never donated, or donated at least 90 days ago"""
        eligible_date = (today or date.today()) - timedelta(days=DONATION_COOLDOWN_DAYS)
        return self.filter(
            models.Q(last_donation_date__isnull=True) |
            models.Q(last_donation_date__lte=eligible_date)
        )


# ---------------------------
# Donor Profile
# ---------------------------
class DonorProfile(models.Model):
    BLOOD_TYPE_CHOICES = [(bt, bt) for bt in BLOOD_TYPES]

    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='donor_profile'
    )

    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    age = models.PositiveIntegerField(
        null=True, blank=True,
        validators=[MinValueValidator(18), MaxValueValidator(65)]
    )
    weight = models.FloatField(null=True, blank=True, validators=[MinValueValidator(45)])
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    phone = models.CharField(max_length=20, blank=True, db_index=True)

    # Address (city/state drive the "new request in your area" fan-out)
    street = models.CharField(max_length=200, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)

    # Geolocation (optional)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    # Donation tracking
    donation_count = models.PositiveIntegerField(default=0)
    last_donation_date = models.DateField(null=True, blank=True)
    is_available = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = DonorProfileQuerySet.as_manager()

    @property
    def can_donate(self) -> bool:
        """Donors can donate every 90 days"""
        if not self.last_donation_date:
            return True
        return (date.today() - self.last_donation_date).days >= DONATION_COOLDOWN_DAYS

    @property
    def contact_phone(self):
        return self.phone or self.user.phone

    def __str__(self):
        return f"{self.user.display_name} ({self.blood_type})"

    class Meta:
        verbose_name = "Donor Profile"
        verbose_name_plural = "Donor Profiles"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['blood_type', 'state', 'city'], name='donor_bloodtype_area_idx'),
        ]
