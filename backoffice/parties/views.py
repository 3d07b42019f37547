import logging

from django.db import transaction
from django.db.models import Count
from django.db.models.deletion import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from backoffice.core.exceptions import Conflict
from backoffice.core.permissions import HasOrganization
from backoffice.core.responses import success_response, validation_error_response
from backoffice.core.utils import create_audit_log, get_tenant_object, paginate
from .filters import ClientFilter
from .models import Client
from .serializers import ClientSerializer

logger = logging.getLogger('backoffice.parties')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def client_list_create(request):
    """List clients of the organization or create a new client"""
    organization = request.user.organization
    if request.method == 'GET':
        queryset = Client.objects.filter(organization=organization).annotate(order_count=Count('orders')) \
            .order_by('first_name', 'last_name', 'id')
        client_filter = ClientFilter(request.query_params, queryset=queryset)
        if not client_filter.is_valid():
            return validation_error_response(client_filter.errors)
        return success_response(paginate(request, client_filter.qs, ClientSerializer))

    logger.info(f"User {request.user.username} creating client with data: {request.data}")
    serializer = ClientSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Client creation validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    client = serializer.save(organization=organization)
    logger.info(f"Client '{client.full_name}' created successfully by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Client',
                     object_id=client.id, object_name=client.full_name)
    return success_response(ClientSerializer(client).data, status_code=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    client = get_tenant_object(Client, request, pk, code='CLIENT_NOT_FOUND')

    if request.method == 'GET':
        return success_response(ClientSerializer(client).data)

    if request.method == 'DELETE':
        logger.info(f"User {request.user.username} deleting client {pk} ({client.full_name})")
        try:
            with transaction.atomic():
                client.delete()
        except ProtectedError:
            logger.warning(f"Client {pk} has orders and cannot be deleted")
            raise Conflict('Client has orders and cannot be deleted', code='CLIENT_HAS_ORDERS')
        create_audit_log(request=request, action='delete', model_name='Client',
                         object_id=pk, object_name=client.full_name)
        return success_response(None, message='Client deleted')

    serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        logger.warning(f"Client update validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    serializer.save()
    logger.info(f"Client {pk} updated successfully")
    create_audit_log(request=request, action='update', model_name='Client', object_id=client.id,
                     object_name=client.full_name, changes=dict(serializer.validated_data))
    return success_response(serializer.data)
