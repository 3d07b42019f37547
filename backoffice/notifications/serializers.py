from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    created_by_email = serializers.EmailField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = Notification
        fields = ['id', 'category', 'type', 'title', 'message', 'is_read', 'related_model', 'related_id',
                  'created_by_email', 'created_at']
        read_only_fields = ['category', 'type', 'related_model', 'related_id', 'created_at']


class MessageSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    message = serializers.CharField()


class NotificationPreferencesSerializer(serializers.Serializer):
    new_orders = serializers.BooleanField(required=False)
    status_changes = serializers.BooleanField(required=False)
    low_stock = serializers.BooleanField(required=False)
    weekly_reports = serializers.BooleanField(required=False)
