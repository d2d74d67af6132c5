from django.conf import settings
from django.db import models


class Notification(models.Model):
    """
    A notification job: shown in-app to the recipient and delivered by email
    from a Celery worker. Delivery state is kept so failures can be retried.
    """
    DELIVERY_QUEUED = 'queued'
    DELIVERY_SENT = 'sent'
    DELIVERY_FAILED = 'failed'
    DELIVERY_SKIPPED = 'skipped'

    DELIVERY_CHOICES = [
        (DELIVERY_QUEUED, 'Queued'),
        (DELIVERY_SENT, 'Sent'),
        (DELIVERY_FAILED, 'Failed'),
        (DELIVERY_SKIPPED, 'Skipped (no email address)'),
    ]

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    blood_request = models.ForeignKey(
        'blood_requests.BloodRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )

    kind = models.CharField(max_length=40)
    title = models.CharField(max_length=200)
    message = models.TextField()
    params = models.JSONField(default=dict, blank=True)
    email = models.EmailField(blank=True, help_text="Overrides the recipient's email when set")
    urgent = models.BooleanField(default=False)

    is_read = models.BooleanField(default=False)

    delivery_status = models.CharField(max_length=10, choices=DELIVERY_CHOICES, default=DELIVERY_QUEUED)
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.kind} → {self.recipient} ({self.delivery_status})"

    @property
    def email_address(self):
        return self.email or self.recipient.email

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='notification_inbox_idx'),
            models.Index(fields=['delivery_status'], name='notification_delivery_idx'),
        ]
