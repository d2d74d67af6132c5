# notifications/serializers.py
from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source='kind', read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id',
            'type',
            'title',
            'message',
            'blood_request',
            'urgent',
            'is_read',
            'delivery_status',
            'created_at',
        ]
        read_only_fields = fields
