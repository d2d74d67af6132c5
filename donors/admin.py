from django.contrib import admin
from .models import DonorProfile


@admin.register(DonorProfile)
class DonorProfileAdmin(admin.ModelAdmin):
    list_display   = ['user', 'blood_type', 'city', 'state', 'donation_count', 'is_available', 'can_donate_display']
    list_filter    = ['blood_type', 'is_available', 'state']
    search_fields  = ['user__username', 'user__email', 'phone', 'city']
    ordering       = ['-donation_count']
    readonly_fields = ['donation_count', 'last_donation_date', 'created_at', 'updated_at']

    fieldsets = (
        ('Personal Info', {
            'fields': ('user', 'age', 'gender', 'phone', 'blood_type')
        }),
        ('Address', {
            'fields': ('street', 'city', 'state', 'zip_code', 'country', 'latitude', 'longitude')
        }),
        ('Donation Stats', {
            'fields': ('donation_count', 'last_donation_date', 'is_available')
        }),
        ('Health', {
            'fields': ('weight',),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(boolean=True, description='Can Donate Now')
    def can_donate_display(self, obj):
        return obj.can_donate
