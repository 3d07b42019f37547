import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Sum
from django.db.models.deletion import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from backoffice.core.exceptions import Conflict, HANDLED_EXCEPTIONS, ValidationFailed
from backoffice.core.permissions import HasOrganization
from backoffice.core.responses import error_response, success_response, validation_error_response
from backoffice.core.utils import create_audit_log, get_tenant_object, paginate
from backoffice.notifications.services import notify_stock_level
from .filters import ProductFilter
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer, StockAdjustmentSerializer

logger = logging.getLogger('backoffice.catalog')


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def category_list_create(request):
    """List categories of the organization or create a new one"""
    organization = request.user.organization
    if request.method == 'GET':
        categories = Category.objects.filter(organization=organization).annotate(product_count=Count('products')) \
            .order_by('name')
        search = request.query_params.get('search')
        if search:
            categories = categories.filter(name__icontains=search)
        return success_response(CategorySerializer(categories, many=True).data)

    logger.info(f"User {request.user.username} creating category with data: {request.data}")
    serializer = CategorySerializer(data=request.data, context={'organization': organization})
    if not serializer.is_valid():
        logger.warning(f"Category creation validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    category = serializer.save(organization=organization)
    create_audit_log(request=request, action='create', model_name='Category',
                     object_id=category.id, object_name=category.name)
    return success_response(CategorySerializer(category).data, status_code=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_tenant_object(Category, request, pk, code='CATEGORY_NOT_FOUND')

    if request.method == 'GET':
        return success_response(CategorySerializer(category).data)

    if request.method == 'DELETE':
        logger.info(f"User {request.user.username} deleting category {pk} ({category.name})")
        create_audit_log(request=request, action='delete', model_name='Category',
                         object_id=category.id, object_name=category.name)
        category.delete()
        return success_response(None, message='Category deleted')

    serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH',
                                    context={'organization': request.user.organization})
    if not serializer.is_valid():
        logger.warning(f"Category update validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    serializer.save()
    logger.info(f"Category {pk} updated successfully")
    return success_response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def category_stats(request):
    """Category counts for the catalog dashboard"""
    categories = Category.objects.filter(organization_id=request.user.organization_id) \
        .annotate(product_count=Count('products'))
    return success_response({
        'total': categories.count(),
        'with_products': categories.filter(product_count__gt=0).count(),
        'empty': categories.filter(product_count=0).count(),
        'uncategorized_products': Product.objects.filter(
            organization_id=request.user.organization_id, category__isnull=True
        ).count(),
    })


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def product_list_create(request):
    """List products (filterable, paginated) or create a new product"""
    try:
        organization = request.user.organization
        if request.method == 'GET':
            queryset = Product.objects.filter(organization=organization).select_related('category')
            product_filter = ProductFilter(request.query_params, queryset=queryset)
            if not product_filter.is_valid():
                return validation_error_response(product_filter.errors)
            queryset = product_filter.qs.order_by('name')
            return success_response(paginate(request, queryset, ProductSerializer))

        logger.info(f"User {request.user.username} creating product with data: {request.data}")
        serializer = ProductSerializer(data=request.data, context={'organization': organization})
        if not serializer.is_valid():
            logger.warning(f"Product creation validation failed: {serializer.errors}")
            return validation_error_response(serializer.errors)
        product = serializer.save(organization=organization)
        logger.info(f"Product '{product.name}' created successfully by {request.user.username}")
        create_audit_log(request=request, action='create', model_name='Product', object_id=product.id,
                         object_name=product.name, changes={'price': str(product.price), 'stock': product.stock})
        return success_response(ProductSerializer(product).data, status_code=status.HTTP_201_CREATED)
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in product_list_create: {str(e)}", exc_info=True)
        return error_response('An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
                              status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_tenant_object(Product, request, pk, code='PRODUCT_NOT_FOUND',
                                queryset=Product.objects.select_related('category'))

    if request.method == 'GET':
        return success_response(ProductSerializer(product).data)

    if request.method == 'DELETE':
        logger.info(f"User {request.user.username} deleting product {pk} ({product.name})")
        try:
            with transaction.atomic():
                product.delete()
        except ProtectedError:
            logger.warning(f"Product {pk} is referenced by orders and cannot be deleted")
            raise Conflict('Product is used in existing orders and cannot be deleted', code='PRODUCT_IN_USE')
        create_audit_log(request=request, action='delete', model_name='Product',
                         object_id=pk, object_name=product.name)
        return success_response(None, message='Product deleted')

    old_values = {'price': str(product.price), 'stock': product.stock}
    serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH',
                                   context={'organization': request.user.organization})
    if not serializer.is_valid():
        logger.warning(f"Product update validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    product = serializer.save()
    logger.info(f"Product {pk} updated successfully")
    create_audit_log(request=request, action='update', model_name='Product', object_id=product.id,
                     object_name=product.name,
                     changes={'old': old_values, 'new': {'price': str(product.price), 'stock': product.stock}})
    if product.stock != old_values['stock']:
        notify_stock_level(product, old_values['stock'])
    return success_response(ProductSerializer(product).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def product_adjust_stock(request, pk):
    """Add or remove units from a product's stock"""
    serializer = StockAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    adjustment = serializer.validated_data['adjustment']

    with transaction.atomic():
        product = get_tenant_object(Product, request, pk, code='PRODUCT_NOT_FOUND',
                                    queryset=Product.objects.select_for_update())
        previous = product.stock
        if previous + adjustment < 0:
            raise ValidationFailed(
                f'{product.name}: Insufficient stock (available: {previous}, requested: {-adjustment})',
                code='INSUFFICIENT_STOCK'
            )
        product.stock = F('stock') + adjustment
        product.save(update_fields=['stock', 'updated_at'])
        product.refresh_from_db()

    logger.info(f"User {request.user.username} adjusted stock of product {pk} by {adjustment} ({previous} -> {product.stock})")
    create_audit_log(request=request, action='stock_adjust', model_name='Product', object_id=product.id,
                     object_name=product.name,
                     changes={'previous': previous, 'adjustment': adjustment, 'new': product.stock,
                              'reason': serializer.validated_data['reason']})
    notify_stock_level(product, previous)
    return success_response(ProductSerializer(product).data, message='Stock adjusted')


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def product_stats(request):
    """Inventory figures for the products dashboard"""
    products = Product.objects.filter(organization_id=request.user.organization_id)
    totals = products.aggregate(
        total_units=Sum('stock'),
        inventory_value=Sum(
            ExpressionWrapper(F('price') * F('stock'), output_field=DecimalField(max_digits=14, decimal_places=2))
        ),
    )
    return success_response({
        'total_products': products.count(),
        'total_units': totals['total_units'] or 0,
        'inventory_value': str((totals['inventory_value'] or Decimal('0')).quantize(Decimal('0.01'))),
        'low_stock': products.filter(stock__gt=0, stock__lte=F('low_stock_threshold')).count(),
        'out_of_stock': products.filter(stock=0).count(),
    })
