from django.contrib.auth import get_user_model
from rest_framework import serializers
from .models import Courier, OrderAssignment

User = get_user_model()


class CourierSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    active_assignments = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Courier
        fields = ['id', 'first_name', 'last_name', 'full_name', 'phone', 'email', 'user',
                  'is_available', 'active_assignments', 'created_at', 'updated_at']
        read_only_fields = ['is_available', 'created_at', 'updated_at']

    def validate_first_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('First name is required', code='REQUIRED_FIELD')
        return value

    def validate_last_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Last name is required', code='REQUIRED_FIELD')
        return value

    def validate_phone(self, value):
        value = value.strip()
        if len(''.join(ch for ch in value if ch.isdigit())) < 7:
            raise serializers.ValidationError('Phone number must have at least 7 digits', code='INVALID_PHONE')
        return value

    def validate_user(self, value):
        organization = self.context.get('organization')
        if value is not None and organization is not None and value.organization_id != organization.id:
            raise serializers.ValidationError('User does not belong to your organization', code='INVALID_USER')
        return value


class OrderAssignmentSerializer(serializers.ModelSerializer):
    courier_name = serializers.CharField(source='courier.full_name', read_only=True)
    courier_phone = serializers.CharField(source='courier.phone', read_only=True)
    order_status = serializers.CharField(source='order.status', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = OrderAssignment
        fields = ['id', 'order', 'order_status', 'courier', 'courier_name', 'courier_phone', 'status',
                  'status_display', 'notes', 'assigned_by', 'assigned_at', 'updated_at']
        read_only_fields = fields


class AssignmentCreateSerializer(serializers.Serializer):
    order = serializers.IntegerField()
    courier = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')
