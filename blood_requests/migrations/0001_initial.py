import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('donors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BloodRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(max_length=200)),
                ('blood_type', models.CharField(choices=[('A+', 'A+'), ('A-', 'A-'), ('B+', 'B+'), ('B-', 'B-'), ('AB+', 'AB+'), ('AB-', 'AB-'), ('O+', 'O+'), ('O-', 'O-')], max_length=3)),
                ('units_needed', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('urgency', models.CharField(choices=[('normal', 'Normal'), ('urgent', 'Urgent'), ('emergency', 'Emergency')], default='normal', max_length=10)),
                ('reason', models.TextField()),
                ('required_by', models.DateTimeField()),
                ('hospital_name', models.CharField(blank=True, max_length=200)),
                ('hospital_address', models.CharField(blank=True, max_length=255)),
                ('hospital_city', models.CharField(blank=True, max_length=100)),
                ('hospital_state', models.CharField(blank=True, max_length=100)),
                ('hospital_zip_code', models.CharField(blank=True, max_length=20)),
                ('hospital_phone', models.CharField(blank=True, max_length=20)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('contact_name', models.CharField(blank=True, max_length=200)),
                ('contact_phone', models.CharField(blank=True, max_length=20)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('contact_relationship', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('partially_fulfilled', 'Partially Fulfilled'), ('fulfilled', 'Fulfilled'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('requested_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blood_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Blood Request',
                'verbose_name_plural': 'Blood Requests',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['requested_by', 'created_at'], name='request_owner_created_idx'),
                    models.Index(fields=['hospital_state', 'hospital_city'], name='request_area_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DonorResponse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('pending_confirmation', 'Pending Confirmation'), ('donated', 'Donated'), ('rejected', 'Rejected'), ('declined', 'Declined')], default='pending', max_length=20)),
                ('response_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('accepted_date', models.DateTimeField(blank=True, null=True)),
                ('donation_date', models.DateTimeField(blank=True, null=True)),
                ('donation_proof_photo', models.URLField(blank=True, max_length=500, null=True)),
                ('notes', models.TextField(blank=True)),
                ('requester_feedback', models.TextField(blank=True)),
                ('needs_reupload', models.BooleanField(default=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('blood_request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='responses', to='blood_requests.bloodrequest')),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='responses', to='donors.donorprofile')),
            ],
            options={
                'ordering': ['response_date', 'id'],
                'indexes': [models.Index(fields=['blood_request', 'status'], name='response_request_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('blood_request', 'donor'), name='unique_donor_per_request')],
            },
        ),
    ]
