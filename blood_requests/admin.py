# blood_requests/admin.py
from django.contrib import admin
from django.utils.html import format_html

from .models import BloodRequest, DonorResponse


class DonorResponseInline(admin.TabularInline):
    model = DonorResponse
    extra = 0
    fields = ['donor', 'status', 'response_date', 'donation_date', 'donation_proof_photo', 'needs_reupload']
    readonly_fields = ['response_date', 'donation_date']
    raw_id_fields = ['donor']


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'patient_name',
        'blood_type',
        'urgency',
        'status',
        'hospital_name',
        'requested_by',
        'donor_count',
        'created_at',
    ]
    list_filter = ['status', 'urgency', 'blood_type', 'created_at']
    search_fields = ['patient_name', 'hospital_name', 'hospital_city', 'requested_by__username']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [DonorResponseInline]

    fieldsets = (
        ('Request Information', {
            'fields': ('requested_by', 'patient_name', 'blood_type', 'units_needed',
                       'urgency', 'reason', 'required_by', 'status')
        }),
        ('Hospital', {
            'fields': ('hospital_name', 'hospital_address', 'hospital_city', 'hospital_state',
                       'hospital_zip_code', 'hospital_phone', 'latitude', 'longitude')
        }),
        ('Contact', {
            'fields': ('contact_name', 'contact_phone', 'contact_email', 'contact_relationship')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).prefetch_related('responses')

    def donor_count(self, obj):
        statuses = [response.status for response in obj.responses.all()]
        return format_html(
            '<span style="color: blue;">Active: {}</span> | '
            '<span style="color: orange;">Awaiting: {}</span> | '
            '<span style="color: green;">Donated: {}</span>',
            sum(1 for s in statuses if s in DonorResponse.SLOT_STATUSES),
            statuses.count(DonorResponse.STATUS_PENDING_CONFIRMATION),
            statuses.count(DonorResponse.STATUS_DONATED),
        )
    donor_count.short_description = 'Donors'


@admin.register(DonorResponse)
class DonorResponseAdmin(admin.ModelAdmin):
    list_display = ['id', 'blood_request', 'donor', 'status', 'response_date', 'donation_date', 'needs_reupload']
    list_filter = ['status', 'needs_reupload']
    search_fields = ['donor__user__username', 'blood_request__patient_name']
    raw_id_fields = ['blood_request', 'donor']
