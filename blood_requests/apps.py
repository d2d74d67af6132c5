from django.apps import AppConfig


class BloodRequestsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'blood_requests'
    verbose_name = 'Blood Requests'

    def ready(self):
        from . import signals  # noqa: F401
