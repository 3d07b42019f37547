from rest_framework import serializers
from backoffice.parties.serializers import ClientSerializer
from .models import Order, OrderDetail


class OrderDetailSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = OrderDetail
        fields = ['id', 'product', 'product_name', 'quantity', 'unit_price', 'subtotal']
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    item_count = serializers.IntegerField(read_only=True, required=False)
    courier_name = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ['id', 'client', 'client_name', 'status', 'status_display', 'total', 'delivery_address',
                  'delivery_date', 'item_count', 'courier_name', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_courier_name(self, obj):
        assignment = getattr(obj, 'assignment', None)
        if assignment is None:
            return None
        return assignment.courier.full_name


class OrderSerializer(serializers.ModelSerializer):
    """Full order: client, lines and assignment"""
    client = ClientSerializer(read_only=True)
    details = OrderDetailSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    assignment = serializers.SerializerMethodField()
    created_by = serializers.CharField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = Order
        fields = ['id', 'client', 'status', 'status_display', 'total', 'delivery_address', 'delivery_date',
                  'notes', 'details', 'assignment', 'created_by', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_assignment(self, obj):
        from backoffice.delivery.serializers import OrderAssignmentSerializer
        assignment = getattr(obj, 'assignment', None)
        if assignment is None:
            return None
        return OrderAssignmentSerializer(assignment).data
