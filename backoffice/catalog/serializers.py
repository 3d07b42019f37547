from rest_framework import serializers
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Category name is required', code='REQUIRED_FIELD')
        organization = self.context.get('organization')
        queryset = Category.objects.filter(organization=organization, name__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if organization is not None and queryset.exists():
            raise serializers.ValidationError('A category with this name already exists', code='CATEGORY_EXISTS')
        return value


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, error_messages={
        'invalid': 'Price must be a valid number',
    })
    stock = serializers.IntegerField(required=False, default=0, error_messages={
        'invalid': 'Stock must be a whole number',
    })

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'price', 'stock', 'low_stock_threshold', 'category',
                  'category_name', 'image', 'is_low_stock', 'is_out_of_stock', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError('Product name must have at least 2 characters', code='INVALID_NAME')
        return value

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Price must be greater than zero', code='INVALID_PRICE')
        return value

    def validate_stock(self, value):
        if value < 0:
            raise serializers.ValidationError('Stock cannot be negative', code='INVALID_STOCK')
        return value

    def validate_category(self, value):
        organization = self.context.get('organization')
        if value is not None and organization is not None and value.organization_id != organization.id:
            raise serializers.ValidationError('Category does not belong to your organization', code='INVALID_CATEGORY')
        return value


class StockAdjustmentSerializer(serializers.Serializer):
    adjustment = serializers.IntegerField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')

    def validate_adjustment(self, value):
        if value == 0:
            raise serializers.ValidationError('Adjustment cannot be zero', code='INVALID_STOCK')
        return value
