from django.contrib import admin

from .models import Notification
from .tasks import deliver_notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['id', 'recipient', 'kind', 'urgent', 'is_read', 'delivery_status', 'attempts', 'created_at']
    list_filter = ['kind', 'delivery_status', 'urgent', 'is_read']
    search_fields = ['recipient__username', 'recipient__email', 'title']
    readonly_fields = ['created_at', 'sent_at', 'attempts', 'last_error']
    actions = ['resend']

    @admin.action(description='Resend selected notifications')
    def resend(self, request, queryset):
        count = 0
        for notification in queryset.exclude(delivery_status=Notification.DELIVERY_SENT):
            notification.delivery_status = Notification.DELIVERY_QUEUED
            notification.save(update_fields=['delivery_status'])
            deliver_notification.delay(notification.id)
            count += 1
        self.message_user(request, f"{count} notifications re-queued")
