# bloodhero/celery.py
"""
Celery configuration for background notification delivery and file cleanup
"""
import os
from celery import Celery

# Set default Django settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bloodhero.settings')

# Create Celery app
app = Celery('bloodhero')

# Load config from Django settings (prefix: CELERY_)
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()
