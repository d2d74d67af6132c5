from django.contrib import admin
from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ('username', 'display_name', 'email', 'phone', 'user_type', 'has_donor_profile', 'is_active')
    search_fields = ('username', 'email', 'phone', 'first_name', 'last_name')
    list_filter = ('user_type', 'is_active', 'is_staff')
    ordering = ('-date_joined',)

    @admin.display(boolean=True, description='Donor profile')
    def has_donor_profile(self, obj):
        return hasattr(obj, 'donor_profile')
