from rest_framework import serializers
from .models import Client


class ClientSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    order_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Client
        fields = ['id', 'first_name', 'last_name', 'full_name', 'phone', 'email', 'address',
                  'order_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_first_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('First name is required', code='REQUIRED_FIELD')
        return value

    def validate_phone(self, value):
        value = value.strip()
        digits = ''.join(ch for ch in value if ch.isdigit())
        if len(digits) < 7:
            raise serializers.ValidationError('Phone number must have at least 7 digits', code='INVALID_PHONE')
        return value
