from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    USER_TYPE_CHOICES = (
        ('donor', 'Donor'),
        ('requester', 'Requester'),
        ('admin', 'Admin'),
    )

    user_type = models.CharField(
        max_length=15,
        choices=USER_TYPE_CHOICES,
        default='requester'
    )
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self):
        return f"{self.username} ({self.user_type})"

    @property
    def display_name(self):
        """Name shown in notifications; falls back to the username"""
        return self.get_full_name() or self.username

    @property
    def is_admin(self):
        return self.user_type == 'admin' or self.is_superuser
